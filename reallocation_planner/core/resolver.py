import logging
from collections.abc import Iterable

from reallocation_planner.core.models import (
    Allocation,
    CapacitySnapshot,
    MarketId,
    PlannedWithdrawal,
    ResolvedWithdrawal,
)

logger = logging.getLogger(__name__)


def resolve_withdrawals(
    snapshot: CapacitySnapshot, planned: Iterable[PlannedWithdrawal]
) -> list[ResolvedWithdrawal]:
    """
    Attach market params to planned withdrawals, ascending by market id.

    The receiving contract rejects unsorted, duplicate or zero withdrawals, so
    unknown markets and zero amounts are dropped and repeated markets merged.
    """
    allocations: dict[MarketId, Allocation] = {
        allocation.market_id: allocation for allocation in snapshot.allocations
    }

    amounts: dict[MarketId, int] = {}
    for withdrawal in planned:
        if withdrawal.market_id not in allocations:
            logger.warning(
                "Dropping withdrawal for market missing from snapshot. vault=%s market_id=%s",
                snapshot.vault_address,
                withdrawal.market_id,
            )
            continue
        if withdrawal.amount == 0:
            continue
        amounts[withdrawal.market_id] = amounts.get(withdrawal.market_id, 0) + withdrawal.amount

    return [
        ResolvedWithdrawal(
            market_params=allocations[market_id].market_params,
            amount=amount,
            sort_key=str(market_id),
        )
        for market_id, amount in sorted(amounts.items())
    ]
