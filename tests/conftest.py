"""
Shared fixtures: an in-memory vSphere API with two hosts and two VMs.
"""

import threading
from collections import Counter as CallCounter

import pytest

from vmware_vsphere_collector.catalog import CounterCatalog, CounterDescriptor
from vmware_vsphere_collector.collector import VSphereCollector
from vmware_vsphere_collector.exceptions import VCenterConnectionError
from vmware_vsphere_collector.inventory import EntityKind, EntityResolver, Host, MoRef, VirtualMachine
from vmware_vsphere_collector.metrics import CollectorMetrics
from vmware_vsphere_collector.response import EntityMetric, IntegerSeries

HOST1 = Host(ref=MoRef(EntityKind.HOST, "host-1"), name="1.1.1.1", memory_size=1234567890)
HOST2 = Host(ref=MoRef(EntityKind.HOST, "host-2"), name="2.2.2.2", memory_size=4567890123)
VM1 = VirtualMachine(ref=MoRef(EntityKind.VM, "vm-1"), name="VM1", host_ref=HOST1.ref)
VM2 = VirtualMachine(ref=MoRef(EntityKind.VM, "vm-2"), name="VM2", host_ref=HOST1.ref)
# Not in the default inventory; tests place it on HOST2
VM3 = VirtualMachine(ref=MoRef(EntityKind.VM, "vm-3"), name="VM3", host_ref=HOST2.ref)

COUNTERS = [
    CounterDescriptor(1, "cpu", "usage", "average"),
    CounterDescriptor(2, "cpu", "latency", "average"),
    CounterDescriptor(3, "rescpu", "actav1", "latest"),
    CounterDescriptor(4, "mem", "consumed", "average"),
    CounterDescriptor(5, "net", "bytesTx", "average"),
    CounterDescriptor(6, "net", "bytesRx", "average"),
    CounterDescriptor(7, "net", "packetsTx", "summation"),
    CounterDescriptor(8, "net", "packetsRx", "summation"),
    CounterDescriptor(9, "virtualDisk", "numberReadAveraged", "average"),
    CounterDescriptor(10, "virtualDisk", "numberWriteAveraged", "average"),
    CounterDescriptor(11, "virtualDisk", "read", "average"),
    CounterDescriptor(12, "virtualDisk", "write", "average"),
    CounterDescriptor(13, "virtualDisk", "totalReadLatency", "average"),
    CounterDescriptor(14, "virtualDisk", "totalWriteLatency", "average"),
    CounterDescriptor(15, "rescpu", "actav5", "latest"),
]

# (counter id, instance, value) returned for every queried entity
COUNTER_DATA = [
    (1, "0", 100),
    (1, "1", 110),
    (1, "2", 120),
    (2, "", 200),
    (3, "", 300),
    (15, "", 250),
    (4, "0", 122880),
    (5, "eth0", 400),
    (6, "eth0", 500),
    (7, "eth0", 600),
    (8, "eth0", 700),
    (9, "0", 800),
    (10, "0", 900),
    (11, "0", 1000),
    (12, "0", 1100),
    (13, "0", 1200),
    (14, "0", 1300),
]

CONFIG = {
    "url": "https://vcenter.example.com/sdk",
    "username": "monitoring@vsphere.local",
    "password": "password",
    "insecure": True,
    "clusterName": "Production-Cluster",
}


class FakeVSphereAPI:
    """In-memory stand-in for VSphereClient"""

    def __init__(self):
        self.hosts = [HOST1, HOST2]
        self.vms = {HOST1.ref: [VM1, VM2]}
        self.counters = list(COUNTERS)
        self.data = list(COUNTER_DATA)
        self.calls = CallCounter()
        self.queries = []
        self.connected = False
        self._lock = threading.Lock()

        # Set to a threading.Barrier to hold list_hosts until every cycle reaches it
        self.hosts_barrier = None

        self.connect_error = None
        self.counters_error = None
        self.hosts_error = None
        self.vms_error = None
        self.query_error = None

    def _record(self, call):
        with self._lock:
            self.calls[call] += 1

    def connect(self):
        self._record("connect")
        if self.connect_error:
            raise self.connect_error
        self.connected = True

    def disconnect(self):
        self._record("disconnect")
        self.connected = False

    def is_connected(self):
        return self.connected

    def list_counters(self):
        self._record("list_counters")
        if self.counters_error:
            raise self.counters_error
        return list(self.counters)

    def list_hosts(self):
        self._record("list_hosts")
        if self.hosts_barrier is not None:
            self.hosts_barrier.wait()
        if self.hosts_error:
            raise self.hosts_error
        return list(self.hosts)

    def list_vms(self, host):
        self._record(("list_vms", host.name))
        if self.vms_error:
            raise self.vms_error
        return list(self.vms.get(host.ref, []))

    def query_perf(self, specs):
        self._record("query_perf")
        with self._lock:
            self.queries.append(list(specs))
        if self.query_error:
            raise self.query_error

        results = []
        for spec in specs:
            series = []
            for metric_id in spec.metric_ids:
                for counter_id, instance, value in self.data:
                    if counter_id != metric_id.counter_id:
                        continue
                    if metric_id.instance in ("*", instance):
                        series.append(IntegerSeries(counter_id, instance, (value,)))
            results.append(EntityMetric(entity=spec.entity, series=tuple(series)))
        return results


@pytest.fixture
def fake_api():
    """Fresh in-memory vSphere API"""
    return FakeVSphereAPI()


@pytest.fixture
def catalog(fake_api):
    """Refreshed counter catalog"""
    catalog = CounterCatalog(fake_api)
    catalog.refresh()
    return catalog


@pytest.fixture
def resolver(fake_api):
    """Entity resolver over the fake inventory"""
    return EntityResolver(fake_api)


@pytest.fixture
def collector_metrics():
    return CollectorMetrics()


@pytest.fixture
def collector(fake_api, collector_metrics):
    """Collector wired to the fake API"""
    return VSphereCollector(api_factory=lambda config: fake_api, metrics=collector_metrics)


@pytest.fixture
def config():
    return dict(CONFIG)


@pytest.fixture
def transport_error():
    return VCenterConnectionError("test error")
