import pytest

from reallocation_planner.core.capacity import (
    CachedCapacitySource,
    ContractRead,
    LiveCapacitySource,
    capacity_source_for,
    collect_live_reads,
    live_market_read_from_chain,
)
from reallocation_planner.core.pullable import capacity_report, max_absorbable, max_pullable
from tests.factories import (
    MARKET_A,
    MARKET_B,
    MARKET_C,
    live_read,
    live_reads_matching,
    two_source_snapshot,
)


def test_live_read_converts_supply_shares_to_assets():
    read = live_market_read_from_chain(
        flow_caps=(5, 9),
        position=(300, 0, 0),
        market=(1000, 600, 200, 0, 0, 0),
    )
    assert read.max_in == 5
    assert read.max_out == 9
    assert read.vault_supply_assets == 500
    assert read.market_liquidity == 800


def test_live_read_rounds_down_and_handles_empty_market():
    read = live_market_read_from_chain(flow_caps=(0, 0), position=(1, 0, 0), market=(2, 3, 0))
    assert read.vault_supply_assets == 0
    empty = live_market_read_from_chain(flow_caps=(0, 0), position=(10, 0, 0), market=(0, 0, 0))
    assert empty.vault_supply_assets == 0


def test_live_read_clamps_over_borrowed_liquidity_to_zero():
    read = live_market_read_from_chain(flow_caps=(0, 1), position=(0, 0, 0), market=(100, 100, 150))
    assert read.market_liquidity == 0


def test_collect_live_reads_skips_market_with_failed_call():
    results = [
        ContractRead(True, (0, 50)),
        ContractRead(True, (10, 0, 0)),
        ContractRead(True, (100, 100, 0)),
        ContractRead(True, (0, 50)),
        ContractRead(False, ()),
        ContractRead(True, (100, 100, 0)),
    ]
    reads = collect_live_reads([MARKET_A, MARKET_B.upper().replace("0X", "0x")], results)
    assert list(reads) == [MARKET_A]
    assert reads[MARKET_A].vault_supply_assets == 10


def test_collect_live_reads_rejects_misaligned_results():
    with pytest.raises(ValueError):
        collect_live_reads([MARKET_A], [ContractRead(True, (0, 0))])


def test_live_source_fails_closed_for_market_without_read(base_snapshot):
    source = LiveCapacitySource(
        base_snapshot,
        {MARKET_A: live_read(max_out=40, vault_supply=100, liquidity=100)},
    )
    assert max_pullable(source, MARKET_A) == 40
    assert max_pullable(source, MARKET_B) == 0
    assert max_absorbable(source, MARKET_C) == 0


def test_live_source_keeps_snapshot_supply_cap(base_snapshot):
    source = LiveCapacitySource(
        base_snapshot,
        {MARKET_C: live_read(max_in=1000, vault_supply=150)},
    )
    assert source.supply_cap(MARKET_C) == 200
    assert max_absorbable(source, MARKET_C) == 50


def test_live_reads_override_cached_figures(base_snapshot):
    reads = live_reads_matching(base_snapshot)
    reads[MARKET_A] = live_read(max_out=100, vault_supply=100, liquidity=25)
    source = capacity_source_for(base_snapshot, reads)
    assert isinstance(source, LiveCapacitySource)
    assert max_pullable(source, MARKET_A) == 25


def test_cached_and_live_sources_agree_on_identical_figures():
    snapshot = two_source_snapshot()
    cached = capacity_report(CachedCapacitySource(snapshot), MARKET_C)
    live = capacity_report(LiveCapacitySource(snapshot, live_reads_matching(snapshot)), MARKET_C)
    assert cached == live


def test_capacity_source_for_without_reads_is_cached(base_snapshot):
    assert isinstance(capacity_source_for(base_snapshot), CachedCapacitySource)
