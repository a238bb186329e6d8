"""
FILE: reallocation_planner/core/pullable.py
Pullable and absorbable capacity for one vault's reallocation.
"""

from reallocation_planner.core.amounts import SaturatingAmount, headroom
from reallocation_planner.core.capacity import CapacitySource
from reallocation_planner.core.models import CapacityReport, MarketId, SourceCapacity


def max_pullable(source: CapacitySource, market_id: str) -> int:
    """
    Amount withdrawable from one source market right now:
    min(outflow cap, vault supply, market liquidity). No cap entry means zero.
    """
    key = MarketId(market_id)
    outflow_cap = source.outflow_cap(key)
    if not outflow_cap:
        return 0
    return (
        SaturatingAmount.of(outflow_cap)
        .bounded_by(source.vault_supply(key), source.market_liquidity(key))
        .value
    )


def max_absorbable(source: CapacitySource, destination: str) -> int:
    """
    Amount the destination can take in: its inflow cap, further bounded by the
    vault's remaining supply-cap headroom there. No cap entry means zero.
    """
    key = MarketId(destination)
    inflow_cap = source.inflow_cap(key)
    if inflow_cap is None:
        return 0

    absorbable = SaturatingAmount.of(inflow_cap)
    supply_cap = source.supply_cap(key)
    if supply_cap is not None:
        absorbable = absorbable.bounded_by(
            headroom(supply_cap, source.vault_supply(key)).value
        )
    return absorbable.value


def source_capacities(source: CapacitySource, destination: str) -> list[SourceCapacity]:
    """Eligible sources, largest capacity first, ties by market id."""
    key = MarketId(destination)
    capacities = []
    for market_id in source.market_ids():
        if market_id == key:
            continue
        pullable = max_pullable(source, market_id)
        if pullable > 0:
            capacities.append(SourceCapacity(market_id=market_id, max_pullable=pullable))
    return sorted(capacities, key=lambda item: (-item.max_pullable, item.market_id))


def capacity_report(source: CapacitySource, destination: str) -> CapacityReport:
    sources = source_capacities(source, destination)
    gross = sum((SaturatingAmount.of(item.max_pullable) for item in sources), SaturatingAmount())
    absorbable = max_absorbable(source, destination)
    return CapacityReport(
        destination_market_id=MarketId(destination),
        max_absorbable=absorbable,
        gross_pullable=gross.value,
        # Sum first, then clamp by the destination side.
        total_pullable=gross.bounded_by(absorbable).value,
        sources=sources,
    )


def gross_pullable(source: CapacitySource, destination: str) -> int:
    return capacity_report(source, destination).gross_pullable


def total_pullable(source: CapacitySource, destination: str) -> int:
    return capacity_report(source, destination).total_pullable
