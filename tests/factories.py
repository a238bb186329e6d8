from typing import Iterable, Mapping, Optional

from reallocation_planner.core.models import (
    Allocation,
    CapacitySnapshot,
    FlowCap,
    LiveMarketRead,
    MarketParams,
    PlannedWithdrawal,
    VaultCandidate,
)

VAULT = "0x" + "11" * 20
ALLOCATOR = "0x" + "22" * 20
LOAN_TOKEN = "0x" + "01" * 20
IRM = "0x" + "04" * 20
LLTV = 860000000000000000


def market_id(byte: str) -> str:
    return "0x" + byte * 32


MARKET_A = market_id("aa")
MARKET_B = market_id("bb")
MARKET_C = market_id("cc")
MARKET_D = market_id("dd")


def market_params(seed: str, *, lltv: int = LLTV) -> MarketParams:
    return MarketParams(
        loan_token=LOAN_TOKEN,
        collateral_token="0x" + seed * 20,
        oracle="0x" + "03" * 20,
        irm=IRM,
        lltv=lltv,
    )


def allocation(
    market: str,
    *,
    vault_supply: int = 0,
    market_liquidity: int = 0,
    supply_cap: int = 10**30,
    seed: Optional[str] = None,
) -> Allocation:
    return Allocation(
        market_id=market,
        market_params=market_params(seed or market[2:4]),
        vault_supply=vault_supply,
        market_liquidity=market_liquidity,
        supply_cap=supply_cap,
    )


def flow_cap(*, max_in: int = 0, max_out: int = 0) -> FlowCap:
    return FlowCap(max_in=max_in, max_out=max_out)


def capacity_snapshot(
    *,
    allocations: Iterable[Allocation] | None = None,
    flow_caps: Mapping[str, FlowCap] | None = None,
    vault_address: str = VAULT,
) -> CapacitySnapshot:
    return CapacitySnapshot(
        vault_address=vault_address,
        allocations=list(allocations or []),
        flow_caps=dict(flow_caps or {}),
    )


def two_source_snapshot(*, destination_max_in: int = 120, vault_address: str = VAULT):
    """A: 100 pullable, B: 50 pullable, C: destination with headroom 200."""
    return capacity_snapshot(
        vault_address=vault_address,
        allocations=[
            allocation(MARKET_A, vault_supply=100, market_liquidity=100),
            allocation(MARKET_B, vault_supply=50, market_liquidity=50),
            allocation(MARKET_C, vault_supply=0, market_liquidity=10, supply_cap=200),
        ],
        flow_caps={
            MARKET_A: flow_cap(max_out=100),
            MARKET_B: flow_cap(max_out=50),
            MARKET_C: flow_cap(max_in=destination_max_in),
        },
    )


def live_read(
    *, max_in: int = 0, max_out: int = 0, vault_supply: int = 0, liquidity: int = 0
) -> LiveMarketRead:
    return LiveMarketRead(
        max_in=max_in,
        max_out=max_out,
        vault_supply_assets=vault_supply,
        market_liquidity=liquidity,
    )


def live_reads_matching(snapshot: CapacitySnapshot) -> dict[str, LiveMarketRead]:
    """Live reads carrying exactly the snapshot's cached figures."""
    reads = {}
    for entry in snapshot.allocations:
        cap = snapshot.flow_caps.get(entry.market_id)
        if cap is None:
            continue
        reads[entry.market_id] = live_read(
            max_in=cap.max_in,
            max_out=cap.max_out,
            vault_supply=entry.vault_supply,
            liquidity=entry.market_liquidity,
        )
    return reads


def planned(market: str, amount: int) -> PlannedWithdrawal:
    return PlannedWithdrawal(market_id=market, amount=amount)


def vault_candidate(
    snapshot: CapacitySnapshot,
    *,
    name: str = "Test Vault",
    fee: int = 0,
    live_reads: Mapping[str, LiveMarketRead] | None = None,
) -> VaultCandidate:
    return VaultCandidate(
        vault_address=snapshot.vault_address,
        name=name,
        fee=fee,
        snapshot=snapshot,
        live_reads=dict(live_reads) if live_reads is not None else None,
    )


def index_market(market: str, *, liquidity: int, seed: Optional[str] = None) -> dict:
    collateral_seed = seed or market[2:4]
    return {
        "uniqueKey": market,
        "lltv": str(LLTV),
        "irmAddress": IRM,
        "loanAsset": {"address": LOAN_TOKEN},
        "collateralAsset": {"address": "0x" + collateral_seed * 20},
        "oracle": {"address": "0x" + "03" * 20},
        "state": {"liquidityAssets": str(liquidity)},
    }


def index_vault_payload(
    *,
    address: str = VAULT,
    name: str = "Index Vault",
    fee: int = 0,
    destination_max_in: int = 120,
    source_a_supply: int = 100,
) -> dict:
    return {
        "address": address,
        "name": name,
        "publicAllocatorConfig": {
            "fee": str(fee),
            "flowCaps": [
                {"market": {"uniqueKey": MARKET_A}, "maxIn": "0", "maxOut": "100"},
                {"market": {"uniqueKey": MARKET_B}, "maxIn": "0", "maxOut": "50"},
                {
                    "market": {"uniqueKey": MARKET_C},
                    "maxIn": str(destination_max_in),
                    "maxOut": "0",
                },
            ],
        },
        "state": {
            "allocation": [
                {
                    "supplyAssets": str(source_a_supply),
                    "supplyCap": str(10**30),
                    "market": index_market(MARKET_A, liquidity=100),
                },
                {
                    "supplyAssets": "50",
                    "supplyCap": str(10**30),
                    "market": index_market(MARKET_B, liquidity=50),
                },
                {
                    "supplyAssets": "0",
                    "supplyCap": "200",
                    "market": index_market(MARKET_C, liquidity=10),
                },
            ]
        },
    }


def oversized_snapshot(*, amount: int = 2**130, vault_address: str = VAULT) -> CapacitySnapshot:
    """Source A and destination C sized beyond what a uint128 withdrawal can carry."""
    return capacity_snapshot(
        vault_address=vault_address,
        allocations=[
            allocation(MARKET_A, vault_supply=amount, market_liquidity=amount),
            allocation(MARKET_C, vault_supply=0, market_liquidity=0, supply_cap=amount * 2),
        ],
        flow_caps={
            MARKET_A: flow_cap(max_out=amount),
            MARKET_C: flow_cap(max_in=amount),
        },
    )
