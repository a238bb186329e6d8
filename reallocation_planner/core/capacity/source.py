from typing import Optional, Protocol

from reallocation_planner.core.models import CapacitySnapshot, MarketId


class CapacitySource(Protocol):
    """Capacity lookups shared by the cached and live data paths.

    Caps are ``None`` when no entry exists; quantities default to ``0``.
    """

    @property
    def snapshot(self) -> CapacitySnapshot: ...

    def market_ids(self) -> list[MarketId]: ...

    def outflow_cap(self, market_id: MarketId) -> Optional[int]: ...

    def inflow_cap(self, market_id: MarketId) -> Optional[int]: ...

    def vault_supply(self, market_id: MarketId) -> int: ...

    def market_liquidity(self, market_id: MarketId) -> int: ...

    def supply_cap(self, market_id: MarketId) -> Optional[int]: ...
