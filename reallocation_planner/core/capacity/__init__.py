from collections.abc import Mapping
from typing import Optional

from reallocation_planner.core.capacity.cached import CachedCapacitySource
from reallocation_planner.core.capacity.live import (
    ContractRead,
    LiveCapacitySource,
    collect_live_reads,
    live_market_read_from_chain,
)
from reallocation_planner.core.capacity.source import CapacitySource
from reallocation_planner.core.models import CapacitySnapshot, LiveMarketRead


def capacity_source_for(
    snapshot: CapacitySnapshot,
    live_reads: Optional[Mapping[str, LiveMarketRead]] = None,
) -> CapacitySource:
    if live_reads is None:
        return CachedCapacitySource(snapshot)
    return LiveCapacitySource(snapshot, live_reads)


__all__ = [
    "CachedCapacitySource",
    "CapacitySource",
    "ContractRead",
    "LiveCapacitySource",
    "capacity_source_for",
    "collect_live_reads",
    "live_market_read_from_chain",
]
