"""
Metric definitions for the vSphere collector.

Maps each logical metric (``group.metric`` for a host or a VM) onto the
vSphere performance counters it is computed from, and holds the value
transformations applied to raw counter samples. All tables are built once
at import time and are read-only afterwards.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from .namespace import NAMESPACE_PREFIX, WILDCARD, SourceKind, join_namespace

Number = Union[int, float]

BYTES_PER_MEGABYTE = 1024 * 1024
KILOBYTES_PER_MEGABYTE = 1024

# vSphere counter full names (group.name.rollup)
CPU_USAGE = "cpu.usage.average"
CPU_LATENCY = "cpu.latency.average"
RESCPU_ACTAV1 = "rescpu.actav1.latest"
RESCPU_ACTAV5 = "rescpu.actav5.latest"
MEM_CONSUMED = "mem.consumed.average"
NET_BYTES_TX = "net.bytesTx.average"
NET_BYTES_RX = "net.bytesRx.average"
NET_PACKETS_TX = "net.packetsTx.summation"
NET_PACKETS_RX = "net.packetsRx.summation"
DISK_READ_IOPS = "virtualDisk.numberReadAveraged.average"
DISK_WRITE_IOPS = "virtualDisk.numberWriteAveraged.average"
DISK_READ = "virtualDisk.read.average"
DISK_WRITE = "virtualDisk.write.average"
DISK_READ_LATENCY = "virtualDisk.totalReadLatency.average"
DISK_WRITE_LATENCY = "virtualDisk.totalWriteLatency.average"

MEM_AVAILABLE = "mem.available"


@dataclass(frozen=True)
class MetricDefinition:
    """Logical metric exposed by the collector"""
    group: str
    metric: str
    counters: Tuple[str, ...]
    unit: str
    description: str

    @property
    def key(self) -> str:
        return f"{self.group}.{self.metric}"


@dataclass(frozen=True)
class MetricDescriptor:
    """Namespace template published for metric discovery"""
    namespace: Tuple[str, ...]
    description: str
    unit: str

    @property
    def path(self) -> str:
        return join_namespace(self.namespace)

    def to_dict(self) -> Dict[str, str]:
        return {"namespace": self.path, "description": self.description, "unit": self.unit}


def _cpu_idle(raw: int, memory_size: Optional[int]) -> float:
    # cpu.usage is a percentage scaled by 100
    return 100 - raw / 100


def _cpu_wait(raw: int, memory_size: Optional[int]) -> float:
    return raw / 100


def _cpu_load(raw: int, memory_size: Optional[int]) -> float:
    return raw / 100000


def _rescpu_load(raw: int, memory_size: Optional[int]) -> float:
    return raw / 1000


def _mem_usage(raw: int, memory_size: Optional[int]) -> int:
    return raw // KILOBYTES_PER_MEGABYTE


def _mem_free(raw: int, memory_size: Optional[int]) -> int:
    return memory_size // BYTES_PER_MEGABYTE - raw // KILOBYTES_PER_MEGABYTE


def memory_available(memory_size: int) -> int:
    return memory_size // BYTES_PER_MEGABYTE


Transform = Callable[[int, Optional[int]], Number]

TRANSFORMS: Mapping[str, Transform] = MappingProxyType({
    "cpu.idle": _cpu_idle,
    "cpu.wait": _cpu_wait,
    "cpu.load": _cpu_load,
    "rescpu.load": _rescpu_load,
    "mem.usage": _mem_usage,
    "mem.free": _mem_free,
})

# Transforms that need the host's physical memory size
NEEDS_HOST_MEMORY = frozenset({"mem.free"})


def derive_value(key: str, raw: int, memory_size: Optional[int] = None) -> Number:
    """Apply the derived-value rule for ``group.metric``; unknown keys pass through."""
    transform = TRANSFORMS.get(key)
    if transform is None:
        return raw
    return transform(raw, memory_size)


_NET_METRICS = (
    MetricDefinition("net", "bytesTx", (NET_BYTES_TX,), "kilobytesPerSecond", "Network transmit rate"),
    MetricDefinition("net", "bytesRx", (NET_BYTES_RX,), "kilobytesPerSecond", "Network receive rate"),
    MetricDefinition("net", "packetsTx", (NET_PACKETS_TX,), "number", "Packets transmitted in the sampling interval"),
    MetricDefinition("net", "packetsRx", (NET_PACKETS_RX,), "number", "Packets received in the sampling interval"),
)

_CPU_METRICS = (
    MetricDefinition("cpu", "idle", (CPU_USAGE,), "percent", "CPU idle time"),
    MetricDefinition("cpu", "wait", (CPU_LATENCY,), "percent", "CPU time spent waiting to run"),
)

HOST_METRICS = _CPU_METRICS + (
    MetricDefinition("cpu", "load", (RESCPU_ACTAV5,), "number", "CPU load average over 5 minutes"),
    MetricDefinition("rescpu", "load", (RESCPU_ACTAV1,), "number", "CPU active average over 1 minute"),
    MetricDefinition("mem", "usage", (MEM_CONSUMED,), "megabytes", "Host memory usage"),
    MetricDefinition("mem", "free", (MEM_CONSUMED,), "megabytes", "Host free memory"),
    MetricDefinition("mem", "available", (), "megabytes", "Host memory available"),
) + _NET_METRICS

VM_METRICS = _CPU_METRICS + (
    MetricDefinition("mem", "usage", (MEM_CONSUMED,), "megabytes", "Virtual machine memory usage"),
) + _NET_METRICS + (
    MetricDefinition("virtualDisk", "readIops", (DISK_READ_IOPS,), "number", "Virtual disk read operations per second"),
    MetricDefinition("virtualDisk", "writeIops", (DISK_WRITE_IOPS,), "number", "Virtual disk write operations per second"),
    MetricDefinition("virtualDisk", "readThroughput", (DISK_READ,), "kilobytesPerSecond", "Virtual disk read rate"),
    MetricDefinition("virtualDisk", "writeThroughput", (DISK_WRITE,), "kilobytesPerSecond", "Virtual disk write rate"),
    MetricDefinition("virtualDisk", "readLatency", (DISK_READ_LATENCY,), "milliseconds", "Virtual disk read latency"),
    MetricDefinition("virtualDisk", "writeLatency", (DISK_WRITE_LATENCY,), "milliseconds", "Virtual disk write latency"),
)


def _index(definitions: Tuple[MetricDefinition, ...]) -> Mapping[str, MetricDefinition]:
    return MappingProxyType({definition.key: definition for definition in definitions})


DEFINITIONS: Mapping[SourceKind, Mapping[str, MetricDefinition]] = MappingProxyType({
    SourceKind.HOST: _index(HOST_METRICS),
    SourceKind.VM: _index(VM_METRICS),
})

# (source kind, group.metric) -> counter full names
DEPENDENCIES: Mapping[Tuple[SourceKind, str], Tuple[str, ...]] = MappingProxyType({
    (source, key): definition.counters
    for source, definitions in DEFINITIONS.items()
    for key, definition in definitions.items()
})


def get_definition(source: SourceKind, key: str) -> Optional[MetricDefinition]:
    return DEFINITIONS[source].get(key)


def get_metric_types() -> List[MetricDescriptor]:
    """List every namespace template this collector can produce."""
    descriptors = []
    for source, definitions in DEFINITIONS.items():
        for definition in definitions.values():
            namespace = NAMESPACE_PREFIX + (SourceKind.HOST.value, WILDCARD)
            if source is SourceKind.VM:
                namespace += (SourceKind.VM.value, WILDCARD)
            namespace += (definition.group, WILDCARD, definition.metric)
            descriptors.append(MetricDescriptor(namespace, definition.description, definition.unit))
    return descriptors
