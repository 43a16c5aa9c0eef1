"""
Tests for the VMware vSphere Collector

End-to-end collection cycles against the in-memory vSphere API.

Author: uldyssian-sh
License: MIT
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from vmware_vsphere_collector.collector import VSphereCollector
from vmware_vsphere_collector.config import CollectorConfig
from vmware_vsphere_collector.exceptions import (
    ConfigurationError, NoCountersError, ResourceNotFoundError, ValidationError, VCenterConnectionError
)

from tests.conftest import HOST1, HOST2, VM3


def _paths(metrics):
    return {metric.path: metric.value for metric in metrics}


class TestCollectMetrics:
    """Test VSphereCollector.collect_metrics"""

    def test_host_memory_free(self, collector, config):
        metrics = collector.collect_metrics(["/intel/vmware/vsphere/host/1.1.1.1/mem/*/free"], config)
        assert _paths(metrics) == {"/intel/vmware/vsphere/host/1.1.1.1/mem/0/free": 1057}

    def test_accepts_collector_config(self, collector, config):
        metrics = collector.collect_metrics(
            ["/intel/vmware/vsphere/host/1.1.1.1/mem/*/usage"], CollectorConfig.from_dict(config)
        )
        assert _paths(metrics) == {"/intel/vmware/vsphere/host/1.1.1.1/mem/0/usage": 120}

    def test_accepts_element_lists(self, collector, config):
        namespace = ["intel", "vmware", "vsphere", "host", "1.1.1.1", "cpu", "*", "wait"]
        metrics = collector.collect_metrics([namespace], config)
        assert _paths(metrics) == {"/intel/vmware/vsphere/host/1.1.1.1/cpu/aggregated/wait": 2.0}

    def test_every_host(self, collector, config):
        metrics = collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/usage"], config)
        assert set(_paths(metrics)) == {
            "/intel/vmware/vsphere/host/1.1.1.1/mem/0/usage",
            "/intel/vmware/vsphere/host/2.2.2.2/mem/0/usage",
        }

    def test_absent_host(self, fake_api, collector, config):
        fake_api.hosts = [HOST1]
        metrics = collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/usage"], config)
        assert set(_paths(metrics)) == {"/intel/vmware/vsphere/host/1.1.1.1/mem/0/usage"}

    def test_vm_metric(self, collector, config):
        metrics = collector.collect_metrics(
            ["/intel/vmware/vsphere/host/1.1.1.1/vm/VM1/virtualDisk/*/readIops"], config
        )
        assert _paths(metrics) == {"/intel/vmware/vsphere/host/1.1.1.1/vm/VM1/virtualDisk/0/readIops": 800}

    def test_cpu_load(self, collector, config):
        metrics = collector.collect_metrics([
            "/intel/vmware/vsphere/host/2.2.2.2/cpu/*/load",
            "/intel/vmware/vsphere/host/2.2.2.2/rescpu/*/load",
        ], config)
        assert _paths(metrics) == pytest.approx({
            "/intel/vmware/vsphere/host/2.2.2.2/cpu/aggregated/load": 0.0025,
            "/intel/vmware/vsphere/host/2.2.2.2/rescpu/aggregated/load": 0.3,
        })

    def test_unsupported_metric_ignored(self, collector, config):
        metrics = collector.collect_metrics([
            "/intel/vmware/vsphere/host/1.1.1.1/mem/*/free",
            "/intel/vmware/vsphere/host/1.1.1.1/mem/*/swapped",
        ], config)
        assert list(_paths(metrics)) == ["/intel/vmware/vsphere/host/1.1.1.1/mem/0/free"]

    def test_only_unsupported_metrics(self, fake_api, collector, config):
        with pytest.raises(NoCountersError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/swapped"], config)
        assert fake_api.calls["query_perf"] == 0

    def test_single_query_per_cycle(self, fake_api, collector, config):
        collector.collect_metrics([
            "/intel/vmware/vsphere/host/*/cpu/*/idle",
            "/intel/vmware/vsphere/host/*/mem/*/free",
            "/intel/vmware/vsphere/host/*/vm/*/net/*/bytesRx",
        ], config)

        assert fake_api.calls["query_perf"] == 1
        assert len(fake_api.queries[0]) == 4

    def test_memory_available_skips_query(self, fake_api, collector, config):
        metrics = collector.collect_metrics(["/intel/vmware/vsphere/host/2.2.2.2/mem/*/available"], config)

        assert _paths(metrics) == {"/intel/vmware/vsphere/host/2.2.2.2/mem/aggregated/available": 4356}
        assert fake_api.calls["query_perf"] == 0

    def test_no_namespaces(self, collector, config):
        with pytest.raises(ValidationError):
            collector.collect_metrics([], config)

    def test_malformed_namespace(self, fake_api, collector, config):
        with pytest.raises(ValidationError):
            collector.collect_metrics(["/intel/vmware/vsphere/cluster/c1/mem/*/free"], config)
        assert fake_api.calls["connect"] == 0

    def test_bad_config(self, fake_api, collector, config):
        del config["password"]
        with pytest.raises(ConfigurationError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)
        assert fake_api.calls["connect"] == 0

    def test_connection_failure(self, fake_api, collector, config, transport_error):
        fake_api.connect_error = transport_error
        with pytest.raises(VCenterConnectionError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)

    def test_catalog_failure(self, fake_api, collector, collector_metrics, config, transport_error):
        fake_api.counters_error = transport_error

        with pytest.raises(VCenterConnectionError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)

        assert collector_metrics.get_value(
            "vsphere_collector_cycles_total", {"status": "failure"}) == 1
        assert collector_metrics.get_value(
            "vsphere_collector_errors_total", {"error_type": "VCenterConnectionError"}) == 1

    def test_query_failure(self, fake_api, collector, config, transport_error):
        fake_api.query_error = transport_error
        with pytest.raises(VCenterConnectionError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)

    def test_missing_counter(self, fake_api, collector, config):
        fake_api.counters = [counter for counter in fake_api.counters if counter.id != 4]
        with pytest.raises(ResourceNotFoundError):
            collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)

    def test_success_metrics(self, collector, collector_metrics, config):
        collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/usage"], config)

        assert collector_metrics.get_value(
            "vsphere_collector_cycles_total", {"status": "success"}) == 1
        assert collector_metrics.get_value("vsphere_collector_metrics_total") == 2
        assert collector_metrics.get_value("vsphere_collector_query_entities_total") == 2


class TestCollectorLifecycle:
    """Test connection reuse and per-cycle caches"""

    def test_caches_fresh_per_cycle(self, fake_api, collector, config):
        namespaces = ["/intel/vmware/vsphere/host/*/vm/*/cpu/*/idle"]
        collector.collect_metrics(namespaces, config)
        collector.collect_metrics(namespaces, config)

        assert fake_api.calls["list_counters"] == 2
        assert fake_api.calls["list_hosts"] == 2
        assert fake_api.calls[("list_vms", "1.1.1.1")] == 2

    def test_vm_on_later_host_lists_only_its_host(self, fake_api, collector, config):
        fake_api.vms[HOST2.ref] = [VM3]

        metrics = collector.collect_metrics(["/intel/vmware/vsphere/host/2.2.2.2/vm/VM3/cpu/*/idle"], config)

        assert len(metrics) == 3
        assert fake_api.calls[("list_vms", "2.2.2.2")] == 1
        assert ("list_vms", "1.1.1.1") not in fake_api.calls

    def test_concurrent_cycles(self, fake_api, collector, config):
        # Both cycles must list hosts themselves for the barrier to release
        fake_api.hosts_barrier = threading.Barrier(2, timeout=5)
        namespaces = [
            "/intel/vmware/vsphere/host/*/mem/*/free",
            "/intel/vmware/vsphere/host/*/vm/*/cpu/*/idle",
        ]

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(collector.collect_metrics, namespaces, config) for _ in range(2)]
            results = [_paths(future.result(timeout=10)) for future in futures]

        assert results[0] == results[1]
        assert len(results[0]) == 8
        assert results[0]["/intel/vmware/vsphere/host/1.1.1.1/mem/0/free"] == 1057
        assert results[0]["/intel/vmware/vsphere/host/2.2.2.2/mem/0/free"] == 4236
        assert fake_api.calls["list_counters"] == 2
        assert fake_api.calls["list_hosts"] == 2
        assert fake_api.calls["query_perf"] == 2

    def test_one_inventory_listing_per_cycle(self, fake_api, collector, config):
        collector.collect_metrics([
            "/intel/vmware/vsphere/host/*/mem/*/free",
            "/intel/vmware/vsphere/host/*/vm/*/cpu/*/idle",
            "/intel/vmware/vsphere/host/1.1.1.1/vm/VM2/mem/*/usage",
        ], config)

        assert fake_api.calls["list_hosts"] == 1
        assert fake_api.calls[("list_vms", "1.1.1.1")] == 1

    def test_client_reused(self, config):
        created = []

        def factory(collector_config):
            from tests.conftest import FakeVSphereAPI
            api = FakeVSphereAPI()
            created.append(api)
            return api

        collector = VSphereCollector(api_factory=factory)
        collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)
        collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)

        assert len(created) == 1
        assert created[0].calls["connect"] == 2

    def test_close(self, fake_api, collector, config):
        collector.collect_metrics(["/intel/vmware/vsphere/host/*/mem/*/free"], config)
        collector.close()
        assert fake_api.calls["disconnect"] == 1

    def test_metric_types(self, collector):
        paths = [descriptor.path for descriptor in collector.get_metric_types()]
        assert "/intel/vmware/vsphere/host/*/mem/*/free" in paths
        assert "/intel/vmware/vsphere/host/*/vm/*/virtualDisk/*/readIops" in paths
