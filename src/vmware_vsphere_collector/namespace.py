"""
Metric namespaces for the vSphere collector.

A namespace is a fixed-position path::

    intel/vmware/vsphere/host/<host>/<group>/<instance>/<metric>
    intel/vmware/vsphere/host/<host>/vm/<vm>/<group>/<instance>/<metric>

Host, VM and instance positions accept the ``*`` wildcard.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple, Union

from .exceptions import ValidationError

VENDOR = "intel"
CLASS = "vmware"
PRODUCT = "vsphere"
NAMESPACE_PREFIX = (VENDOR, CLASS, PRODUCT)

WILDCARD = "*"
AGGREGATED_INSTANCE = "aggregated"

HOST_POSITION = 4
VM_POSITION = 6

_HOST_LENGTH = 8
_VM_LENGTH = 10


class SourceKind(Enum):
    """Kind of entity a namespace addresses"""
    HOST = "host"
    VM = "vm"


def split_namespace(namespace: Union[str, Sequence[str]]) -> Tuple[str, ...]:
    """Split a '/'-separated namespace, tolerating a leading slash."""
    if isinstance(namespace, str):
        return tuple(namespace.strip().strip("/").split("/"))
    return tuple(namespace)


def join_namespace(elements: Sequence[str]) -> str:
    return "/" + "/".join(elements)


def matches(selector: str, value: str) -> bool:
    """Equality-or-wildcard match of a namespace selector."""
    return selector == WILDCARD or selector == value


def normalize_instance(instance: str) -> str:
    """Map the provider's empty aggregate instance to the sentinel token."""
    return instance if instance else AGGREGATED_INSTANCE


@dataclass(frozen=True)
class MetricRequest:
    """A single requested metric namespace"""
    source: SourceKind
    host: str
    vm: str
    group: str
    instance: str
    metric: str

    @property
    def key(self) -> str:
        return f"{self.group}.{self.metric}"

    @property
    def is_vm(self) -> bool:
        return self.source is SourceKind.VM

    @property
    def elements(self) -> Tuple[str, ...]:
        return self.resolve(self.host, self.vm, self.instance)

    @property
    def path(self) -> str:
        return join_namespace(self.elements)

    def resolve(self, host: str, vm: str, instance: str) -> Tuple[str, ...]:
        """Return the concrete namespace for the given host, VM and instance."""
        elements = NAMESPACE_PREFIX + (SourceKind.HOST.value, host)
        if self.is_vm:
            elements += (SourceKind.VM.value, vm)
        return elements + (self.group, instance, self.metric)

    @classmethod
    def parse(cls, namespace: Union[str, Sequence[str]]) -> "MetricRequest":
        elements = split_namespace(namespace)

        if elements[:len(NAMESPACE_PREFIX)] != NAMESPACE_PREFIX:
            raise ValidationError(f"Namespace must start with {join_namespace(NAMESPACE_PREFIX)}: {namespace}")
        if any(not element for element in elements):
            raise ValidationError(f"Namespace contains empty elements: {namespace}")
        if len(elements) < _HOST_LENGTH or elements[3] != SourceKind.HOST.value:
            raise ValidationError(f"Namespace does not address a host: {namespace}")

        if len(elements) == _HOST_LENGTH:
            group, instance, metric = elements[5:8]
            return cls(SourceKind.HOST, elements[HOST_POSITION], "", group, instance, metric)

        if len(elements) == _VM_LENGTH and elements[5] == SourceKind.VM.value:
            group, instance, metric = elements[7:10]
            return cls(SourceKind.VM, elements[HOST_POSITION], elements[VM_POSITION], group, instance, metric)

        raise ValidationError(f"Malformed namespace: {namespace}")

    def __str__(self) -> str:
        return self.path
