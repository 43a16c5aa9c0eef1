"""
Batched performance query construction.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

import structlog

from .catalog import CounterCatalog
from .definitions import DEPENDENCIES
from .exceptions import NoCountersError
from .inventory import EntityResolver, MoRef
from .namespace import WILDCARD, MetricRequest, SourceKind

logger = structlog.get_logger(__name__)

# 20 selects the real-time sampling interval rather than historical rollups
REAL_TIME_INTERVAL_ID = 20
MAX_SAMPLES = 1
QUERY_FORMAT = "normal"


@dataclass(frozen=True)
class MetricId:
    """Counter and instance selector for a query"""
    counter_id: int
    instance: str = WILDCARD


@dataclass
class QuerySpec:
    """Performance query for a single entity"""
    entity: MoRef
    metric_ids: List[MetricId] = field(default_factory=list)
    interval_id: int = REAL_TIME_INTERVAL_ID
    max_samples: int = MAX_SAMPLES
    format: str = QUERY_FORMAT

    def add_counter(self, counter_id: int) -> None:
        if all(metric_id.counter_id != counter_id for metric_id in self.metric_ids):
            self.metric_ids.append(MetricId(counter_id))

    @property
    def counter_ids(self) -> List[int]:
        return [metric_id.counter_id for metric_id in self.metric_ids]


class QueryBuilder:
    """Builds one deduplicated QuerySpec per entity from metric requests."""

    def __init__(self, catalog: CounterCatalog, resolver: EntityResolver,
                 dependencies: Mapping[Tuple[SourceKind, str], Tuple[str, ...]] = DEPENDENCIES):
        self.catalog = catalog
        self.resolver = resolver
        self.dependencies = dependencies

    def build(self, requests: Sequence[MetricRequest]) -> List[QuerySpec]:
        """Return query specs for requests.

        Raises NoCountersError when none of the requests names a known
        metric. Requests whose entities do not exist contribute nothing.
        """
        host_specs: Dict[str, QuerySpec] = {}
        vm_specs: Dict[Tuple[str, str], QuerySpec] = {}
        known = False

        for request in requests:
            counters = self.dependencies.get((request.source, request.key))
            if counters is None:
                logger.debug("No dependencies for metric", namespace=request.path)
                continue
            known = True
            if not counters:
                continue

            counter_ids = [self.catalog.resolve_by_name(name).id for name in counters]

            for host in self.resolver.find_hosts(request.host):
                if not request.is_vm:
                    spec = host_specs.setdefault(host.name, QuerySpec(entity=host.ref))
                    for counter_id in counter_ids:
                        spec.add_counter(counter_id)
                    continue

                for vm in self.resolver.find_vms(host, request.vm):
                    spec = vm_specs.setdefault((host.name, vm.name), QuerySpec(entity=vm.ref))
                    for counter_id in counter_ids:
                        spec.add_counter(counter_id)

        if not known:
            raise NoCountersError("None of the requested metrics is supported")

        specs = list(host_specs.values()) + list(vm_specs.values())
        logger.debug("Query specs built", hosts=len(host_specs), vms=len(vm_specs))
        return specs
