from collections.abc import Iterable

from reallocation_planner.core.amounts import headroom
from reallocation_planner.core.calldata import MAX_WITHDRAWAL_AMOUNT
from reallocation_planner.core.capacity import CapacitySource
from reallocation_planner.core.models import (
    MarketId,
    PlannedWithdrawal,
    WithdrawalViolation,
)


def validate_manual_withdrawals(
    source: CapacitySource,
    destination: str,
    planned: Iterable[PlannedWithdrawal],
) -> list[WithdrawalViolation]:
    """
    Check hand-entered withdrawals against every source- and destination-side limit.

    Entries for the same market are summed before the per-market checks, since
    they reach the contract as a single merged withdrawal.
    """
    destination_id = MarketId(destination)
    known_markets = set(source.market_ids())
    violations: list[WithdrawalViolation] = []
    per_market: dict[MarketId, int] = {}

    for withdrawal in sorted(planned, key=lambda item: item.market_id):
        market_id = withdrawal.market_id
        amount = withdrawal.amount
        if market_id == destination_id:
            violations.append(_violation(market_id, "DESTINATION_AS_SOURCE", amount, 0))
            continue
        if amount <= 0:
            violations.append(_violation(market_id, "NON_POSITIVE_AMOUNT", amount, 0))
            continue
        if market_id not in known_markets:
            violations.append(_violation(market_id, "UNKNOWN_MARKET", amount, 0))
            continue
        per_market[market_id] = per_market.get(market_id, 0) + amount

    for market_id, amount in sorted(per_market.items()):
        if amount > MAX_WITHDRAWAL_AMOUNT:
            violations.append(
                _violation(market_id, "EXCEEDS_WITHDRAWAL_LIMIT", amount, MAX_WITHDRAWAL_AMOUNT)
            )
        max_out = source.outflow_cap(market_id) or 0
        if amount > max_out:
            violations.append(_violation(market_id, "EXCEEDS_MAX_OUTFLOW", amount, max_out))
        vault_supply = source.vault_supply(market_id)
        if amount > vault_supply:
            violations.append(
                _violation(market_id, "EXCEEDS_VAULT_SUPPLY", amount, vault_supply)
            )
        liquidity = source.market_liquidity(market_id)
        if amount > liquidity:
            violations.append(
                _violation(market_id, "EXCEEDS_MARKET_LIQUIDITY", amount, liquidity)
            )

    total = sum(per_market.values(), 0)
    if total == 0:
        return violations

    max_in = source.inflow_cap(destination_id) or 0
    if total > max_in:
        violations.append(_violation(destination_id, "EXCEEDS_MAX_INFLOW", total, max_in))
    supply_cap = source.supply_cap(destination_id)
    if supply_cap is not None:
        room = headroom(supply_cap, source.vault_supply(destination_id)).value
        if total > room:
            violations.append(
                _violation(destination_id, "EXCEEDS_SUPPLY_CAP_HEADROOM", total, room)
            )
    return violations


def _violation(market_id: MarketId, code: str, measured: int, limit: int) -> WithdrawalViolation:
    return WithdrawalViolation(
        market_id=market_id, reason_code=code, measured=measured, limit=limit
    )
