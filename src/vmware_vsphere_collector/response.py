"""
Performance query results and their flattening into samples.

A QueryPerf response is a list of per-entity results; each entity result
holds one series per counter instance, and each series holds the sampled
values. With the real-time interval and a single sample requested, every
series carries exactly one value.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import structlog

from .catalog import CounterCatalog
from .exceptions import MalformedResponseError
from .inventory import EntityKind, EntityResolver, MoRef
from .namespace import normalize_instance

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IntegerSeries:
    """Values of one counter instance"""
    counter_id: int
    instance: str
    values: Tuple[int, ...]


@dataclass(frozen=True)
class EntityMetric:
    """Performance results for one entity"""
    entity: MoRef
    series: Tuple[IntegerSeries, ...]


@dataclass(frozen=True)
class ParsedSample:
    """Single attributed counter value"""
    host_name: str
    vm_name: str
    counter_name: str
    instance: str
    value: int


class ResponseParser:
    """Flattens entity results into ParsedSamples."""

    def __init__(self, catalog: CounterCatalog, resolver: EntityResolver):
        self.catalog = catalog
        self.resolver = resolver

    def parse(self, results: Sequence[EntityMetric]) -> List[ParsedSample]:
        samples: List[ParsedSample] = []

        for result in results:
            host_name, vm_name = self._entity_names(result.entity)

            for series in result.series:
                if len(series.values) != 1:
                    raise MalformedResponseError(
                        f"Incorrect number ({len(series.values)}) of values for counter "
                        f"{series.counter_id} instance '{series.instance}' of {result.entity}"
                    )

                counter = self.catalog.resolve_by_id(series.counter_id)
                samples.append(ParsedSample(
                    host_name=host_name,
                    vm_name=vm_name,
                    counter_name=counter.full_name,
                    instance=normalize_instance(series.instance),
                    value=series.values[0],
                ))

        logger.debug("Performance results parsed", entities=len(results), samples=len(samples))
        return samples

    def _entity_names(self, ref: MoRef) -> Tuple[str, str]:
        if ref.kind is EntityKind.HOST:
            return self.resolver.resolve_host_by_ref(ref).name, ""

        vm = self.resolver.resolve_vm_by_ref(ref)
        host = self.resolver.resolve_host_by_ref(vm.host_ref)
        return host.name, vm.name
