"""
Adapter from the remote vault index payload to engine inputs.

Parsing only; fetching the payload is the caller's concern.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from reallocation_planner.core.amounts import SaturatingAmount
from reallocation_planner.core.models import (
    ZERO_ADDRESS,
    Allocation,
    CapacitySnapshot,
    FlowCap,
    MarketId,
    MarketParams,
    VaultCandidate,
)


class _IndexModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class IndexAsset(_IndexModel):
    address: str


class IndexMarketState(_IndexModel):
    liquidity_assets: int = Field(default=0, alias="liquidityAssets")


class IndexMarket(_IndexModel):
    unique_key: str = Field(alias="uniqueKey")
    lltv: int = 0
    irm_address: str = Field(alias="irmAddress")
    loan_asset: IndexAsset = Field(alias="loanAsset")
    collateral_asset: Optional[IndexAsset] = Field(default=None, alias="collateralAsset")
    oracle: Optional[IndexAsset] = None
    oracle_address: Optional[str] = Field(default=None, alias="oracleAddress")
    state: IndexMarketState = Field(default_factory=IndexMarketState)


class IndexMarketRef(_IndexModel):
    unique_key: str = Field(alias="uniqueKey")


class IndexFlowCap(_IndexModel):
    market: IndexMarketRef
    max_in: int = Field(alias="maxIn")
    max_out: int = Field(alias="maxOut")


class IndexPublicAllocatorConfig(_IndexModel):
    fee: int = 0
    flow_caps: List[IndexFlowCap] = Field(default_factory=list, alias="flowCaps")


class IndexAllocation(_IndexModel):
    supply_assets: int = Field(alias="supplyAssets")
    supply_cap: int = Field(alias="supplyCap")
    market: IndexMarket


class IndexVaultState(_IndexModel):
    allocation: List[IndexAllocation] = Field(default_factory=list)


class IndexVault(_IndexModel):
    address: str
    name: str = ""
    public_allocator_config: Optional[IndexPublicAllocatorConfig] = Field(
        default=None, alias="publicAllocatorConfig"
    )
    state: IndexVaultState = Field(default_factory=IndexVaultState)


def market_params_from_index(market: IndexMarket) -> MarketParams:
    oracle = market.oracle.address if market.oracle else market.oracle_address
    return MarketParams(
        loan_token=market.loan_asset.address,
        collateral_token=market.collateral_asset.address
        if market.collateral_asset
        else ZERO_ADDRESS,
        oracle=oracle or ZERO_ADDRESS,
        irm=market.irm_address,
        lltv=market.lltv,
    )


def snapshot_from_index(vault: IndexVault) -> CapacitySnapshot:
    allocations = [
        Allocation(
            market_id=MarketId(entry.market.unique_key),
            market_params=market_params_from_index(entry.market),
            vault_supply=entry.supply_assets,
            market_liquidity=SaturatingAmount.of(entry.market.state.liquidity_assets).value,
            supply_cap=entry.supply_cap,
        )
        for entry in vault.state.allocation
    ]
    config = vault.public_allocator_config
    flow_caps = {
        MarketId(cap.market.unique_key): FlowCap(max_in=cap.max_in, max_out=cap.max_out)
        for cap in (config.flow_caps if config else [])
    }
    return CapacitySnapshot(
        vault_address=vault.address,
        allocations=allocations,
        flow_caps=flow_caps,
    )


def vault_candidate_from_index(payload: dict[str, Any] | IndexVault) -> VaultCandidate:
    vault = payload if isinstance(payload, IndexVault) else IndexVault.model_validate(payload)
    snapshot = snapshot_from_index(vault)
    config = vault.public_allocator_config
    return VaultCandidate(
        vault_address=snapshot.vault_address,
        name=vault.name,
        fee=config.fee if config else 0,
        snapshot=snapshot,
    )
