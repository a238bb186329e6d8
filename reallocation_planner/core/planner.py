"""
FILE: reallocation_planner/core/planner.py
Plan orchestration: sizing, greedy allocation, resolution and calldata.
"""

import logging
from collections.abc import Sequence
from typing import NamedTuple, Optional

from reallocation_planner.core.allocator import allocate
from reallocation_planner.core.amounts import SaturatingAmount, require_amount
from reallocation_planner.core.calldata import (
    build_allocator_reallocate_calldata,
    build_bundler_reallocate_calldata,
    require_encodable,
    to_hex,
)
from reallocation_planner.core.capacity import CapacitySource, capacity_source_for
from reallocation_planner.core.common.canonical import hash_model
from reallocation_planner.core.models import (
    MarketId,
    MarketParams,
    PlanningPreconditionError,
    ReallocationPlan,
    ReallocationStatus,
    VaultCandidate,
    normalize_address,
)
from reallocation_planner.core.pullable import total_pullable
from reallocation_planner.core.resolver import resolve_withdrawals

logger = logging.getLogger(__name__)


class RankedVault(NamedTuple):
    candidate: VaultCandidate
    pullable: int


def source_for_candidate(candidate: VaultCandidate, *, use_live_reads: bool = True) -> CapacitySource:
    live_reads = candidate.live_reads if use_live_reads else None
    return capacity_source_for(candidate.snapshot, live_reads)


def resolve_destination_params(
    candidate: VaultCandidate, destination: str, destination_params: Optional[MarketParams]
) -> MarketParams:
    if destination_params is not None:
        return destination_params
    allocation = candidate.snapshot.allocation_for(destination)
    if allocation is None:
        raise PlanningPreconditionError(
            f"market params required for destination {MarketId(destination)} "
            "absent from the vault allocation list"
        )
    return allocation.market_params


def plan_reallocation(
    candidate: VaultCandidate,
    destination: str,
    requested_amount: int,
    allocator_address: str,
    *,
    destination_params: Optional[MarketParams] = None,
    use_live_reads: bool = True,
) -> Optional[ReallocationPlan]:
    """
    Build a contract-ready plan for one vault, or ``None`` when nothing can move.

    The request is clamped by the vault's total pullable amount (which already
    includes the destination's inflow cap and supply-cap headroom) before
    allocation, so callers cannot over-request the destination.
    """
    requested = require_amount(requested_amount, field_name="requested_amount")
    allocator = normalize_address(allocator_address)
    destination_id = MarketId(destination)
    target_params = resolve_destination_params(candidate, destination_id, destination_params)

    source = source_for_candidate(candidate, use_live_reads=use_live_reads)
    bounded = SaturatingAmount.of(requested).bounded_by(total_pullable(source, destination_id))
    if bounded.is_zero:
        logger.debug(
            "No reallocation capacity. vault=%s destination=%s requested=%s",
            candidate.vault_address,
            destination_id,
            requested,
        )
        return None

    planned = allocate(source, destination_id, bounded.value)
    withdrawals = resolve_withdrawals(candidate.snapshot, planned)
    if not withdrawals:
        return None

    require_encodable(candidate.fee, withdrawals, target_params)

    planned_amount = sum((item.amount for item in withdrawals), 0)
    plan = ReallocationPlan(
        vault_address=candidate.vault_address,
        vault_name=candidate.name,
        fee=candidate.fee,
        destination_market_id=destination_id,
        target_market_params=target_params,
        requested_amount=requested,
        planned_amount=planned_amount,
        fully_covered=planned_amount >= requested,
        withdrawals=withdrawals,
        bundler_calldata=to_hex(
            build_bundler_reallocate_calldata(
                allocator,
                candidate.vault_address,
                candidate.fee,
                withdrawals,
                target_params,
            )
        ),
        allocator_calldata=to_hex(
            build_allocator_reallocate_calldata(
                candidate.vault_address,
                withdrawals,
                target_params,
            )
        ),
    )
    return plan.model_copy(update={"plan_hash": hash_model(plan, exclude={"plan_hash"})})


def plan_status(plan: Optional[ReallocationPlan]) -> ReallocationStatus:
    if plan is None:
        return "NO_CAPACITY"
    return "PLANNED" if plan.fully_covered else "PARTIAL"


def rank_vaults_by_pullable(
    candidates: Sequence[VaultCandidate],
    destination: str,
    *,
    use_live_reads: bool = True,
) -> list[RankedVault]:
    destination_id = MarketId(destination)
    ranked = []
    for candidate in candidates:
        source = source_for_candidate(candidate, use_live_reads=use_live_reads)
        pullable = total_pullable(source, destination_id)
        if pullable > 0:
            ranked.append(RankedVault(candidate=candidate, pullable=pullable))
    return sorted(ranked, key=lambda item: (-item.pullable, item.candidate.vault_address))


def total_available_liquidity(ranked: Sequence[RankedVault]) -> int:
    return sum((item.pullable for item in ranked), 0)


def select_vault(ranked: Sequence[RankedVault], amount: int) -> Optional[RankedVault]:
    """First vault able to cover ``amount`` alone, else the one with the most pullable."""
    if not ranked:
        return None
    return next((item for item in ranked if item.pullable >= amount), ranked[0])


def plan_from_ranked(
    ranked: Sequence[RankedVault],
    destination: str,
    extra_amount_needed: int,
    allocator_address: str,
    *,
    destination_params: Optional[MarketParams] = None,
    use_live_reads: bool = True,
) -> Optional[ReallocationPlan]:
    """Plan against a ranking already produced by ``rank_vaults_by_pullable``."""
    needed = require_amount(extra_amount_needed, field_name="extra_amount_needed")
    if needed == 0:
        return None

    selected = select_vault(ranked, needed)
    if selected is None:
        return None

    logger.info(
        "Selected vault for liquidity sourcing. vault=%s pullable=%s needed=%s",
        selected.candidate.vault_address,
        selected.pullable,
        needed,
    )
    return plan_reallocation(
        selected.candidate,
        destination,
        needed,
        allocator_address,
        destination_params=destination_params,
        use_live_reads=use_live_reads,
    )


def compute_reallocation(
    candidates: Sequence[VaultCandidate],
    destination: str,
    extra_amount_needed: int,
    allocator_address: str,
    *,
    destination_params: Optional[MarketParams] = None,
    use_live_reads: bool = True,
) -> Optional[ReallocationPlan]:
    require_amount(extra_amount_needed, field_name="extra_amount_needed")
    ranked = rank_vaults_by_pullable(candidates, destination, use_live_reads=use_live_reads)
    return plan_from_ranked(
        ranked,
        destination,
        extra_amount_needed,
        allocator_address,
        destination_params=destination_params,
        use_live_reads=use_live_reads,
    )
