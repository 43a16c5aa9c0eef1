"""
VMware vSphere API client

Thin pyVmomi wrapper providing the inventory, counter catalog and
performance query calls used by the collector.

Author: uldyssian-sh
License: MIT
"""

import ssl
import threading
from typing import Any, List, Optional, Sequence

import structlog

# VMware imports
from pyVmomi import vim, vmodl
from pyVim.connect import SmartConnect, Disconnect

# Local imports
from .catalog import CounterDescriptor
from .config import CollectorConfig
from .exceptions import (
    VCenterConnectionError, VCenterAuthenticationError, ResourceNotFoundError,
    MalformedResponseError
)
from .inventory import EntityKind, Host, MoRef, VirtualMachine
from .query import QuerySpec
from .response import EntityMetric, IntegerSeries

logger = structlog.get_logger(__name__)

_MANAGED_TYPES = {
    EntityKind.HOST: vim.HostSystem,
    EntityKind.VM: vim.VirtualMachine,
}


class VSphereClient:
    """VMware vSphere API client"""

    def __init__(self, config: CollectorConfig):
        self.config = config
        self.service_instance = None
        self.content = None
        self.cluster = None
        self._connected = False
        self._lock = threading.Lock()

    def connect(self) -> None:
        """Connect to vCenter and locate the configured cluster"""
        with self._lock:
            if self._connected:
                return

            if self.config.insecure:
                ssl_context = ssl.create_default_context()
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE
            else:
                ssl_context = None

            try:
                self.service_instance = SmartConnect(
                    host=self.config.host,
                    user=self.config.username,
                    pwd=self.config.password,
                    port=self.config.port,
                    path=self.config.path,
                    sslContext=ssl_context,
                    httpConnectionTimeout=self.config.timeout
                )
            except vim.fault.InvalidLogin as e:
                logger.error("vCenter authentication failed", host=self.config.host)
                raise VCenterAuthenticationError(f"Authentication failed: {e.msg}")
            except Exception as e:
                logger.error("vCenter connection failed", host=self.config.host, error=str(e))
                raise VCenterConnectionError(f"Connection failed: {str(e)}")

            if not self.service_instance:
                raise VCenterConnectionError(f"Failed to connect to vCenter {self.config.host}")

            try:
                self.content = self.service_instance.RetrieveContent()
                self.cluster = self._find_cluster(self.config.cluster_name)
            except Exception:
                Disconnect(self.service_instance)
                self.service_instance = None
                self.content = None
                raise
            self._connected = True

            logger.info("Connected to vCenter", host=self.config.host, cluster=self.config.cluster_name)

    def disconnect(self) -> None:
        """Disconnect from vCenter"""
        with self._lock:
            if self.service_instance:
                try:
                    Disconnect(self.service_instance)
                    logger.info("Disconnected from vCenter", host=self.config.host)
                except Exception as e:
                    logger.error("Disconnect error", error=str(e))
            self.service_instance = None
            self.content = None
            self.cluster = None
            self._connected = False

    def is_connected(self) -> bool:
        """Check if connected to vCenter"""
        return self._connected and self.service_instance is not None

    def _find_cluster(self, name: str) -> Any:
        container = self.content.viewManager.CreateContainerView(
            self.content.rootFolder, [vim.ClusterComputeResource], True
        )
        try:
            for cluster in container.view:
                if cluster.name == name:
                    return cluster
        finally:
            container.Destroy()
        raise ResourceNotFoundError(f"Cluster {name} not found")

    def _require_connection(self) -> None:
        if not self.is_connected():
            raise VCenterConnectionError("Not connected to vCenter")

    def _managed_object(self, ref: MoRef) -> Any:
        return _MANAGED_TYPES[ref.kind](ref.value, self.service_instance._stub)

    def list_counters(self) -> List[CounterDescriptor]:
        """List all performance counters available on vCenter"""
        self._require_connection()
        try:
            counters = self.content.perfManager.perfCounter
            return [
                CounterDescriptor(
                    id=counter.key,
                    group=counter.groupInfo.key,
                    name=counter.nameInfo.key,
                    rollup=str(counter.rollupType),
                )
                for counter in counters
            ]
        except vmodl.MethodFault as e:
            raise VCenterConnectionError(f"Unable to retrieve performance counters: {e.msg}")
        except Exception as e:
            raise VCenterConnectionError(f"Unable to retrieve performance counters: {str(e)}")

    def list_hosts(self) -> List[Host]:
        """List hosts of the configured cluster"""
        self._require_connection()
        try:
            return [
                Host(
                    ref=MoRef(EntityKind.HOST, host._moId),
                    name=host.name,
                    memory_size=host.hardware.memorySize,
                )
                for host in self.cluster.host
            ]
        except vmodl.MethodFault as e:
            raise VCenterConnectionError(f"Unable to retrieve hosts: {e.msg}")
        except Exception as e:
            raise VCenterConnectionError(f"Unable to retrieve hosts: {str(e)}")

    def list_vms(self, host: Host) -> List[VirtualMachine]:
        """List virtual machines running on host"""
        self._require_connection()
        try:
            vms = []
            for vm in self._managed_object(host.ref).vm:
                runtime_host = vm.summary.runtime.host
                host_ref = MoRef(EntityKind.HOST, runtime_host._moId) if runtime_host else host.ref
                vms.append(VirtualMachine(
                    ref=MoRef(EntityKind.VM, vm._moId),
                    name=vm.name,
                    host_ref=host_ref,
                ))
            return vms
        except vmodl.MethodFault as e:
            raise VCenterConnectionError(f"Unable to retrieve virtual machines: {e.msg}")
        except Exception as e:
            raise VCenterConnectionError(f"Unable to retrieve virtual machines: {str(e)}")

    def query_perf(self, specs: Sequence[QuerySpec]) -> List[EntityMetric]:
        """Send all query specs to vCenter in a single QueryPerf call"""
        self._require_connection()
        query_specs = [self._query_spec(spec) for spec in specs]

        try:
            results = self.content.perfManager.QueryPerf(querySpec=query_specs)
        except vmodl.MethodFault as e:
            raise VCenterConnectionError(f"Unable to call QueryPerf: {e.msg}")
        except Exception as e:
            raise VCenterConnectionError(f"Unable to call QueryPerf: {str(e)}")

        return [self._entity_metric(result) for result in results or []]

    def _query_spec(self, spec: QuerySpec) -> Any:
        return vim.PerformanceManager.QuerySpec(
            entity=self._managed_object(spec.entity),
            intervalId=spec.interval_id,
            maxSample=spec.max_samples,
            format=spec.format,
            metricId=[
                vim.PerformanceManager.MetricId(counterId=metric_id.counter_id, instance=metric_id.instance)
                for metric_id in spec.metric_ids
            ],
        )

    @staticmethod
    def _entity_metric(result: Any) -> EntityMetric:
        if not isinstance(result, vim.PerformanceManager.EntityMetric):
            raise MalformedResponseError(f"Unexpected performance result type: {type(result).__name__}")

        entity = result.entity
        if isinstance(entity, vim.HostSystem):
            kind = EntityKind.HOST
        elif isinstance(entity, vim.VirtualMachine):
            kind = EntityKind.VM
        else:
            raise MalformedResponseError(f"Unexpected entity type in performance result: {type(entity).__name__}")

        series = []
        for item in result.value or []:
            if not isinstance(item, vim.PerformanceManager.IntSeries):
                raise MalformedResponseError(f"Unexpected series type in performance result: {type(item).__name__}")
            series.append(IntegerSeries(
                counter_id=item.id.counterId,
                instance=item.id.instance or "",
                values=tuple(item.value or ()),
            ))

        return EntityMetric(entity=MoRef(kind, entity._moId), series=tuple(series))
