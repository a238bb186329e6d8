from typing import Optional

from reallocation_planner.core.models import Allocation, CapacitySnapshot, MarketId


class CachedCapacitySource:
    """Reads every figure from an index-derived snapshot."""

    def __init__(self, snapshot: CapacitySnapshot) -> None:
        self._snapshot = snapshot
        self._allocations: dict[MarketId, Allocation] = {
            allocation.market_id: allocation for allocation in snapshot.allocations
        }

    @property
    def snapshot(self) -> CapacitySnapshot:
        return self._snapshot

    def market_ids(self) -> list[MarketId]:
        return [allocation.market_id for allocation in self._snapshot.allocations]

    def outflow_cap(self, market_id: MarketId) -> Optional[int]:
        cap = self._snapshot.flow_caps.get(market_id)
        return cap.max_out if cap is not None else None

    def inflow_cap(self, market_id: MarketId) -> Optional[int]:
        cap = self._snapshot.flow_caps.get(market_id)
        return cap.max_in if cap is not None else None

    def vault_supply(self, market_id: MarketId) -> int:
        allocation = self._allocations.get(market_id)
        return allocation.vault_supply if allocation is not None else 0

    def market_liquidity(self, market_id: MarketId) -> int:
        allocation = self._allocations.get(market_id)
        return allocation.market_liquidity if allocation is not None else 0

    def supply_cap(self, market_id: MarketId) -> Optional[int]:
        allocation = self._allocations.get(market_id)
        return allocation.supply_cap if allocation is not None else None
