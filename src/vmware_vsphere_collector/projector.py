"""
Projection of parsed samples back onto requested namespaces.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import structlog

from .definitions import (
    MEM_AVAILABLE, NEEDS_HOST_MEMORY, MetricDefinition, Number, derive_value,
    get_definition, memory_available,
)
from .exceptions import ResourceNotFoundError
from .inventory import EntityResolver
from .namespace import AGGREGATED_INSTANCE, MetricRequest, join_namespace, matches
from .response import ParsedSample

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DerivedMetric:
    """Resolved metric value ready for publishing"""
    namespace: Tuple[str, ...]
    value: Number
    unit: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def path(self) -> str:
        return join_namespace(self.namespace)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "namespace": self.path,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp.isoformat(),
        }


class MetricProjector:
    """Matches samples against requests and applies derived-value rules."""

    def __init__(self, resolver: EntityResolver):
        self.resolver = resolver

    def project(self, requests: Sequence[MetricRequest], samples: Sequence[ParsedSample],
                timestamp: Optional[datetime] = None) -> List[DerivedMetric]:
        timestamp = timestamp or datetime.now(timezone.utc)
        metrics: List[DerivedMetric] = []

        for request in requests:
            definition = get_definition(request.source, request.key)
            if definition is None:
                continue

            if request.key == MEM_AVAILABLE and not request.is_vm:
                metrics.extend(self._memory_available(request, definition, timestamp))
                continue

            for sample in self._matching(request, definition, samples):
                memory_size = None
                if request.key in NEEDS_HOST_MEMORY:
                    memory_size = self._host_memory(sample.host_name)

                metrics.append(DerivedMetric(
                    namespace=request.resolve(sample.host_name, sample.vm_name, sample.instance),
                    value=derive_value(request.key, sample.value, memory_size),
                    unit=definition.unit,
                    timestamp=timestamp,
                ))

        logger.debug("Metrics projected", requests=len(requests), metrics=len(metrics))
        return metrics

    def _matching(self, request: MetricRequest, definition: MetricDefinition,
                  samples: Sequence[ParsedSample]) -> Iterator[ParsedSample]:
        for sample in samples:
            if sample.counter_name not in definition.counters:
                continue
            if not matches(request.host, sample.host_name):
                continue
            if request.is_vm:
                if not sample.vm_name or not matches(request.vm, sample.vm_name):
                    continue
            elif sample.vm_name:
                continue
            if not matches(request.instance, sample.instance):
                continue
            yield sample

    def _memory_available(self, request: MetricRequest, definition: MetricDefinition,
                          timestamp: datetime) -> Iterator[DerivedMetric]:
        # Host memory has no per-instance breakdown
        if not matches(request.instance, AGGREGATED_INSTANCE):
            return
        for host in self.resolver.find_hosts(request.host):
            yield DerivedMetric(
                namespace=request.resolve(host.name, "", AGGREGATED_INSTANCE),
                value=memory_available(host.memory_size),
                unit=definition.unit,
                timestamp=timestamp,
            )

    def _host_memory(self, host_name: str) -> int:
        hosts = self.resolver.find_hosts(host_name)
        if not hosts:
            raise ResourceNotFoundError(f"Host {host_name} not found")
        return hosts[0].memory_size
