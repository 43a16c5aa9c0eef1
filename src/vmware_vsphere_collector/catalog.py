"""
vSphere performance counter catalog.

Author: uldyssian-sh
License: MIT
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import structlog

from .exceptions import ResourceNotFoundError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CounterDescriptor:
    """vSphere performance counter"""
    id: int
    group: str
    name: str
    rollup: str

    @property
    def full_name(self) -> str:
        return f"{self.group}.{self.name}.{self.rollup}"


class CounterCatalog:
    """Counter lookups by full name and by id.

    Counter availability can change at runtime, so the catalog must be
    refreshed once per collection cycle before any lookup.
    """

    def __init__(self, api):
        self.api = api
        self._by_name: Optional[Dict[str, CounterDescriptor]] = None
        self._by_id: Optional[Dict[int, CounterDescriptor]] = None

    def refresh(self) -> List[CounterDescriptor]:
        counters = list(self.api.list_counters())
        self._by_name = {counter.full_name: counter for counter in counters}
        self._by_id = {counter.id: counter for counter in counters}
        logger.debug("Counter catalog refreshed", counters=len(counters))
        return counters

    @property
    def loaded(self) -> bool:
        return self._by_id is not None

    def resolve_by_name(self, full_name: str) -> CounterDescriptor:
        if self._by_name is None or full_name not in self._by_name:
            raise ResourceNotFoundError(f"Counter {full_name} not found in vSphere")
        return self._by_name[full_name]

    def resolve_by_id(self, counter_id: int) -> CounterDescriptor:
        if self._by_id is None or counter_id not in self._by_id:
            raise ResourceNotFoundError(f"Counter with id {counter_id} not found in vSphere")
        return self._by_id[counter_id]

    def __len__(self) -> int:
        return len(self._by_id or {})
