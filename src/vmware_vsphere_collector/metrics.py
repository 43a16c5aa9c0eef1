"""
Self-monitoring metrics for the VMware vSphere Collector
"""

from typing import Optional

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest


class CollectorMetrics:
    """Prometheus metrics describing collection cycles."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.cycles_total = Counter(
            "vsphere_collector_cycles_total",
            "Total collection cycles",
            ["status"],
            registry=self.registry
        )

        self.cycle_duration = Histogram(
            "vsphere_collector_cycle_duration_seconds",
            "Collection cycle duration",
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry
        )

        self.errors_total = Counter(
            "vsphere_collector_errors_total",
            "Failed collection cycles by error type",
            ["error_type"],
            registry=self.registry
        )

        self.samples_total = Counter(
            "vsphere_collector_samples_total",
            "Counter samples parsed from vCenter responses",
            registry=self.registry
        )

        self.metrics_total = Counter(
            "vsphere_collector_metrics_total",
            "Metrics returned to callers",
            registry=self.registry
        )

        self.query_entities_total = Counter(
            "vsphere_collector_query_entities_total",
            "Entities included in batched performance queries",
            registry=self.registry
        )

    def record_success(self, duration: float, samples: int, metrics: int, entities: int) -> None:
        self.cycles_total.labels(status="success").inc()
        self.cycle_duration.observe(duration)
        self.samples_total.inc(samples)
        self.metrics_total.inc(metrics)
        self.query_entities_total.inc(entities)

    def record_failure(self, duration: float, error: Exception) -> None:
        self.cycles_total.labels(status="failure").inc()
        self.cycle_duration.observe(duration)
        self.errors_total.labels(error_type=type(error).__name__).inc()

    def get_value(self, name: str, labels: Optional[dict] = None) -> float:
        """Current value of a sample in this registry, 0 when absent."""
        value = self.registry.get_sample_value(name, labels or {})
        return value or 0.0

    def export(self) -> bytes:
        """Render metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
