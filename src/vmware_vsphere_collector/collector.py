"""
VMware vSphere Collector

Collection cycle: translates requested metric namespaces into one batched
performance query and turns the response back into resolved metrics.

Author: uldyssian-sh
License: MIT
"""

import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from .catalog import CounterCatalog
from .client import VSphereClient
from .config import CollectorConfig
from .definitions import MetricDescriptor, get_metric_types
from .exceptions import ValidationError
from .inventory import EntityResolver
from .logging_config import cycle_timer
from .metrics import CollectorMetrics
from .namespace import MetricRequest
from .projector import DerivedMetric, MetricProjector
from .query import QueryBuilder
from .response import ResponseParser

logger = structlog.get_logger(__name__)

Namespace = Union[str, Sequence[str]]


class VSphereCollector:
    """Collects vSphere host and VM metrics for requested namespaces.

    The vCenter connection is kept between cycles, but the counter catalog
    and inventory caches are created fresh for every cycle and never shared,
    so concurrent calls are safe.
    """

    def __init__(self, api_factory: Callable[[CollectorConfig], Any] = VSphereClient,
                 metrics: Optional[CollectorMetrics] = None):
        self.api_factory = api_factory
        self.metrics = metrics or CollectorMetrics()
        self._clients: Dict[tuple, Any] = {}
        self._lock = threading.Lock()

    def collect_metrics(self, namespaces: Sequence[Namespace],
                        config: Union[CollectorConfig, Mapping[str, Any]]) -> List[DerivedMetric]:
        """Run one collection cycle.

        Args:
            namespaces: Requested metric namespaces, wildcards allowed
            config: Connection configuration

        Returns:
            Resolved metrics; any failure raises and returns nothing
        """
        if not namespaces:
            raise ValidationError("No metrics specified")

        cycle_id = uuid.uuid4().hex
        start = time.time()
        cycle_timer.start(cycle_id)

        try:
            requests = [MetricRequest.parse(namespace) for namespace in namespaces]
            if not isinstance(config, CollectorConfig):
                config = CollectorConfig.from_dict(config)

            api = self._client(config)
            metrics, samples, entities = self._run_cycle(api, requests)
        except Exception as e:
            duration = time.time() - start
            self.metrics.record_failure(duration, e)
            cycle_timer.stop(cycle_id, success=False)
            logger.error("Collection cycle failed", cycle_id=cycle_id,
                         error_type=type(e).__name__, error=str(e))
            raise

        duration = time.time() - start
        self.metrics.record_success(duration, samples, len(metrics), entities)
        cycle_timer.stop(cycle_id, metrics=len(metrics))
        logger.info("Collection cycle completed", cycle_id=cycle_id,
                    requests=len(requests), metrics=len(metrics))
        return metrics

    def _run_cycle(self, api: Any, requests: List[MetricRequest]):
        # Available counters can change at runtime; reload every cycle
        catalog = CounterCatalog(api)
        catalog.refresh()
        resolver = EntityResolver(api)

        specs = QueryBuilder(catalog, resolver).build(requests)
        results = api.query_perf(specs) if specs else []

        samples = ResponseParser(catalog, resolver).parse(results)
        metrics = MetricProjector(resolver).project(requests, samples)
        return metrics, len(samples), len(specs)

    def _client(self, config: CollectorConfig) -> Any:
        key = config.cache_key()
        with self._lock:
            client = self._clients.get(key)
            if client is None:
                client = self.api_factory(config)
                self._clients[key] = client
        client.connect()
        return client

    def get_metric_types(self) -> List[MetricDescriptor]:
        """Namespace templates this collector can produce."""
        return get_metric_types()

    def close(self) -> None:
        """Disconnect every cached vCenter client."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.disconnect()
