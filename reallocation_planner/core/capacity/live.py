import logging
from collections.abc import Mapping, Sequence
from typing import NamedTuple, Optional

from reallocation_planner.core.amounts import SaturatingAmount
from reallocation_planner.core.models import (
    Allocation,
    CapacitySnapshot,
    LiveMarketRead,
    MarketId,
)

logger = logging.getLogger(__name__)

READS_PER_MARKET = 3


class ContractRead(NamedTuple):
    success: bool
    value: Sequence[int]


def live_market_read_from_chain(
    *,
    flow_caps: Sequence[int],
    position: Sequence[int],
    market: Sequence[int],
) -> LiveMarketRead:
    """
    Builds a live read from raw contract results.

    flow_caps: (maxIn, maxOut)
    position: (supplyShares, borrowShares, collateral)
    market: (totalSupplyAssets, totalSupplyShares, totalBorrowAssets, ...)
    """
    max_in, max_out = flow_caps[0], flow_caps[1]
    supply_shares = position[0]
    total_supply_assets, total_supply_shares, total_borrow_assets = market[0], market[1], market[2]

    vault_supply_assets = (
        supply_shares * total_supply_assets // total_supply_shares
        if total_supply_shares > 0
        else 0
    )
    liquidity = SaturatingAmount.of(total_supply_assets).saturating_sub(total_borrow_assets)

    return LiveMarketRead(
        max_in=max_in,
        max_out=max_out,
        vault_supply_assets=vault_supply_assets,
        market_liquidity=liquidity.value,
    )


def collect_live_reads(
    market_ids: Sequence[str], results: Sequence[ContractRead]
) -> dict[MarketId, LiveMarketRead]:
    """Walk batched (flowCaps, position, market) results; skip markets with a failed read."""
    if len(results) != len(market_ids) * READS_PER_MARKET:
        raise ValueError(
            f"expected {len(market_ids) * READS_PER_MARKET} reads for "
            f"{len(market_ids)} markets, got {len(results)}"
        )

    reads: dict[MarketId, LiveMarketRead] = {}
    for index, raw_market_id in enumerate(market_ids):
        base = index * READS_PER_MARKET
        flow_caps, position, market = results[base : base + READS_PER_MARKET]
        market_id = MarketId(raw_market_id)
        if not (flow_caps.success and position.success and market.success):
            logger.debug("Skipping live read with failed call. market_id=%s", market_id)
            continue
        reads[market_id] = live_market_read_from_chain(
            flow_caps=flow_caps.value,
            position=position.value,
            market=market.value,
        )
    return reads


class LiveCapacitySource:
    """
    Flow caps, vault supply and liquidity from point-in-time reads.

    Supply caps still come from the snapshot since they change rarely. A market
    without a live read has no flow cap, so it contributes and absorbs nothing.
    """

    def __init__(
        self, snapshot: CapacitySnapshot, live_reads: Mapping[str, LiveMarketRead]
    ) -> None:
        self._snapshot = snapshot
        self._reads: dict[MarketId, LiveMarketRead] = {
            MarketId(market_id): read for market_id, read in live_reads.items()
        }
        self._allocations: dict[MarketId, Allocation] = {
            allocation.market_id: allocation for allocation in snapshot.allocations
        }

    @property
    def snapshot(self) -> CapacitySnapshot:
        return self._snapshot

    def market_ids(self) -> list[MarketId]:
        return [allocation.market_id for allocation in self._snapshot.allocations]

    def outflow_cap(self, market_id: MarketId) -> Optional[int]:
        read = self._reads.get(market_id)
        return read.max_out if read is not None else None

    def inflow_cap(self, market_id: MarketId) -> Optional[int]:
        read = self._reads.get(market_id)
        return read.max_in if read is not None else None

    def vault_supply(self, market_id: MarketId) -> int:
        read = self._reads.get(market_id)
        return read.vault_supply_assets if read is not None else 0

    def market_liquidity(self, market_id: MarketId) -> int:
        read = self._reads.get(market_id)
        return read.market_liquidity if read is not None else 0

    def supply_cap(self, market_id: MarketId) -> Optional[int]:
        allocation = self._allocations.get(market_id)
        return allocation.supply_cap if allocation is not None else None
