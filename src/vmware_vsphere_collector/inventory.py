"""
vSphere inventory entities and the per-cycle entity resolver.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Union

import structlog

from .cache import CycleCache
from .exceptions import ResourceNotFoundError
from .namespace import matches

logger = structlog.get_logger(__name__)


class EntityKind(Enum):
    """Managed object types the collector queries"""
    HOST = "HostSystem"
    VM = "VirtualMachine"


@dataclass(frozen=True)
class MoRef:
    """Managed object reference"""
    kind: EntityKind
    value: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class Host:
    """ESXi host with the properties the collector needs"""
    ref: MoRef
    name: str
    memory_size: int  # bytes


@dataclass(frozen=True)
class VirtualMachine:
    """Virtual machine and the host it runs on"""
    ref: MoRef
    name: str
    host_ref: MoRef


Entity = Union[Host, VirtualMachine]


class EntityResolver:
    """Resolves namespace entity names to references and back.

    Inventory listings are fetched lazily and cached for the lifetime of the
    resolver; at most one host listing and one VM listing per host is made
    until clear_cache() is called. Create one resolver per collection cycle.
    """

    def __init__(self, api):
        self.api = api
        self._hosts = CycleCache("hosts")
        self._vms = CycleCache("vms")

    def clear_cache(self) -> None:
        self._hosts.clear()
        self._vms.clear()

    def hosts(self) -> List[Host]:
        return self._hosts.get_or_load("all", lambda: list(self.api.list_hosts()))

    def vms(self, host: Host) -> List[VirtualMachine]:
        return self._vms.get_or_load(host.ref, lambda: list(self.api.list_vms(host)))

    def find_hosts(self, selector: str) -> List[Host]:
        """Hosts named selector, or every host for the wildcard."""
        return [host for host in self.hosts() if matches(selector, host.name)]

    def find_vms(self, host: Host, selector: str) -> List[VirtualMachine]:
        """VMs on host named selector, or every VM on it for the wildcard."""
        return [vm for vm in self.vms(host) if matches(selector, vm.name)]

    def resolve_host_by_ref(self, ref: MoRef) -> Host:
        for host in self.hosts():
            if host.ref == ref:
                return host
        raise ResourceNotFoundError(f"Host {ref} not found")

    def resolve_vm_by_ref(self, ref: MoRef) -> VirtualMachine:
        """Find a VM by reference, listing VMs of further hosts only on a miss."""
        listed = set()
        for host_ref, vms in self._vms.items():
            listed.add(host_ref)
            for vm in vms:
                if vm.ref == ref:
                    return vm

        for host in self.hosts():
            if host.ref in listed:
                continue
            for vm in self.vms(host):
                if vm.ref == ref:
                    return vm
        raise ResourceNotFoundError(f"Virtual machine {ref} not found")

    def get_stats(self):
        return {"hosts": self._hosts.get_stats(), "vms": self._vms.get_stats()}
