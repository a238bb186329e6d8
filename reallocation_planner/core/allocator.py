import logging

from reallocation_planner.core.amounts import SaturatingAmount, require_amount
from reallocation_planner.core.capacity import CapacitySource
from reallocation_planner.core.models import PlannedWithdrawal
from reallocation_planner.core.pullable import source_capacities

logger = logging.getLogger(__name__)


def allocate(
    source: CapacitySource, destination: str, requested_amount: int
) -> list[PlannedWithdrawal]:
    """
    Greedy split of ``requested_amount`` across source markets, largest first.

    The destination-side bound is not applied here; callers clamp the request
    with ``max_absorbable``/``total_pullable`` beforehand. The result may sum
    to less than requested when source capacity runs out.
    """
    remaining = SaturatingAmount.of(require_amount(requested_amount, field_name="requested_amount"))

    withdrawals: list[PlannedWithdrawal] = []
    for capacity in source_capacities(source, destination):
        if remaining.is_zero:
            break
        pull = remaining.bounded_by(capacity.max_pullable)
        withdrawals.append(PlannedWithdrawal(market_id=capacity.market_id, amount=pull.value))
        remaining = remaining.saturating_sub(pull)

    logger.debug(
        "Allocated reallocation. destination=%s requested=%s sources=%s shortfall=%s",
        destination,
        requested_amount,
        len(withdrawals),
        remaining.value,
    )
    return withdrawals
