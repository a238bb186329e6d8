from reallocation_planner.core.resolver import resolve_withdrawals
from tests.assertions import assert_strictly_ascending, sort_keys
from tests.factories import (
    MARKET_A,
    MARKET_B,
    MARKET_C,
    market_params,
    planned,
)


def test_resolve_sorts_ascending_by_lower_cased_market_id(base_snapshot):
    result = resolve_withdrawals(
        base_snapshot,
        [planned(MARKET_B, 20), planned(MARKET_A, 100)],
    )
    assert sort_keys(result) == [MARKET_A, MARKET_B]
    assert [item.amount for item in result] == [100, 20]
    assert result[0].market_params == market_params("aa")
    assert_strictly_ascending(result)


def test_resolve_orders_mixed_case_ids_canonically(base_snapshot):
    upper_b = MARKET_B.upper().replace("0X", "0x")
    result = resolve_withdrawals(base_snapshot, [planned(upper_b, 5), planned(MARKET_A, 5)])
    assert sort_keys(result) == [MARKET_A, MARKET_B]


def test_resolve_drops_market_missing_from_snapshot(base_snapshot):
    unknown = "0x" + "ee" * 32
    planned_list = [planned(MARKET_A, 10), planned(unknown, 5), planned(MARKET_B, 3)]
    result = resolve_withdrawals(base_snapshot, planned_list)
    assert len(result) == len(planned_list) - 1
    assert sort_keys(result) == [MARKET_A, MARKET_B]


def test_resolve_merges_duplicate_markets_and_drops_zero_amounts(base_snapshot):
    result = resolve_withdrawals(
        base_snapshot,
        [planned(MARKET_A, 10), planned(MARKET_C, 0), planned(MARKET_A, 15)],
    )
    assert sort_keys(result) == [MARKET_A]
    assert result[0].amount == 25


def test_resolve_is_idempotent(base_snapshot):
    planned_list = [planned(MARKET_B, 20), planned(MARKET_A, 100)]
    assert resolve_withdrawals(base_snapshot, planned_list) == resolve_withdrawals(
        base_snapshot, planned_list
    )


def test_resolve_empty_plan(base_snapshot):
    assert resolve_withdrawals(base_snapshot, []) == []
