"""
FILE: reallocation_planner/core/models.py
"""

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    GetCoreSchemaHandler,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic_core import core_schema

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_ADDRESS_REGEX = re.compile(r"^0x[0-9a-f]{40}$")


class PlanningPreconditionError(ValueError):
    pass


class MarketId(str):
    """Case-insensitive market identifier, lower-cased once at construction."""

    __slots__ = ()

    def __new__(cls, value: Any) -> "MarketId":
        if isinstance(value, MarketId):
            return value
        if not isinstance(value, str):
            raise TypeError("market id must be a string")
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("market id must be non-empty")
        return super().__new__(cls, normalized)

    def __repr__(self) -> str:
        return f"MarketId({str.__repr__(self)})"

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(),
            serialization=core_schema.to_string_ser_schema(),
        )


def normalize_address(value: str) -> str:
    normalized = value.strip().lower()
    if not _ADDRESS_REGEX.fullmatch(normalized):
        raise ValueError("address must be a 20-byte 0x-prefixed hex string")
    return normalized


def _serialize_amount(value: int) -> str:
    return str(value)


class MarketParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    loan_token: str = Field(description="Loan asset address.")
    collateral_token: str = Field(
        default=ZERO_ADDRESS,
        description="Collateral asset address; zero address for idle markets.",
    )
    oracle: str = Field(
        default=ZERO_ADDRESS,
        description="Price oracle address; zero address for idle markets.",
    )
    irm: str = Field(description="Interest-rate model address.")
    lltv: int = Field(ge=0, description="Liquidation loan-to-value, 18-decimal fixed point.")

    @field_validator("loan_token", "collateral_token", "oracle", "irm")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return normalize_address(v)

    @field_serializer("lltv")
    def serialize_lltv(self, value: int) -> str:
        return _serialize_amount(value)


class FlowCap(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_in: int = Field(ge=0, description="Amount the vault may still reallocate into the market.")
    max_out: int = Field(
        ge=0, description="Amount the vault may still reallocate out of the market."
    )

    @field_serializer("max_in", "max_out")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)


class Allocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: MarketId = Field(description="Market the vault supplies into.")
    market_params: MarketParams = Field(description="Structural parameters of the market.")
    vault_supply: int = Field(ge=0, description="Assets currently supplied by the vault.")
    market_liquidity: int = Field(
        ge=0, description="Total liquidity available in the market (supply minus borrow)."
    )
    supply_cap: int = Field(ge=0, description="Vault's configured maximum exposure.")

    @field_serializer("vault_supply", "market_liquidity", "supply_cap")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)


class CapacitySnapshot(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "vault_address": "0x" + "11" * 20,
                "allocations": [
                    {
                        "market_id": "0x" + "aa" * 32,
                        "market_params": {
                            "loan_token": "0x" + "01" * 20,
                            "collateral_token": "0x" + "02" * 20,
                            "oracle": "0x" + "03" * 20,
                            "irm": "0x" + "04" * 20,
                            "lltv": "860000000000000000",
                        },
                        "vault_supply": "100",
                        "market_liquidity": "100",
                        "supply_cap": "1000",
                    }
                ],
                "flow_caps": {"0x" + "aa" * 32: {"max_in": "0", "max_out": "100"}},
            }
        },
    )

    vault_address: str = Field(description="Vault whose positions are being reallocated.")
    allocations: List[Allocation] = Field(
        default_factory=list, description="One entry per market the vault touches."
    )
    flow_caps: Dict[MarketId, FlowCap] = Field(
        default_factory=dict, description="Reallocation flow caps keyed by market id."
    )

    @field_validator("vault_address")
    @classmethod
    def validate_vault_address(cls, v: str) -> str:
        return normalize_address(v)

    @model_validator(mode="after")
    def validate_unique_markets(self) -> "CapacitySnapshot":
        seen: set[str] = set()
        for allocation in self.allocations:
            if allocation.market_id in seen:
                raise ValueError(f"duplicate allocation for market {allocation.market_id}")
            seen.add(allocation.market_id)
        return self

    def allocation_for(self, market_id: str) -> Optional[Allocation]:
        key = MarketId(market_id)
        return next((a for a in self.allocations if a.market_id == key), None)


class LiveMarketRead(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_in: int = Field(ge=0, description="Live inflow cap.")
    max_out: int = Field(ge=0, description="Live outflow cap.")
    vault_supply_assets: int = Field(ge=0, description="Vault supply converted to assets.")
    market_liquidity: int = Field(ge=0, description="Market supply minus borrow, floored at 0.")

    @field_serializer("max_in", "max_out", "vault_supply_assets", "market_liquidity")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)


class PlannedWithdrawal(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_id: MarketId
    amount: int = Field(ge=0)

    @field_serializer("amount")
    def serialize_amount(self, value: int) -> str:
        return _serialize_amount(value)


class ResolvedWithdrawal(BaseModel):
    model_config = ConfigDict(frozen=True)

    market_params: MarketParams
    amount: int = Field(ge=0)
    sort_key: str = Field(description="Lower-cased market id; ordering only, not encoded.")

    @field_serializer("amount")
    def serialize_amount(self, value: int) -> str:
        return _serialize_amount(value)


class SourceCapacity(BaseModel):
    market_id: MarketId
    max_pullable: int = Field(ge=0)

    @field_serializer("max_pullable")
    def serialize_amount(self, value: int) -> str:
        return _serialize_amount(value)


class CapacityReport(BaseModel):
    destination_market_id: MarketId
    max_absorbable: int = Field(ge=0, description="Destination-side bound.")
    gross_pullable: int = Field(ge=0, description="Sum over eligible sources before clamping.")
    total_pullable: int = Field(ge=0, description="min(gross_pullable, max_absorbable).")
    sources: List[SourceCapacity] = Field(
        default_factory=list, description="Eligible sources, largest capacity first."
    )

    @field_serializer("max_absorbable", "gross_pullable", "total_pullable")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)


class VaultCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    vault_address: str
    name: str = ""
    fee: int = Field(default=0, ge=0, description="Reallocation fee in native wei.")
    snapshot: CapacitySnapshot
    live_reads: Optional[Dict[MarketId, LiveMarketRead]] = Field(
        default=None,
        description="Point-in-time reads; when present they replace cached caps and balances.",
    )

    @field_validator("vault_address")
    @classmethod
    def validate_vault_address(cls, v: str) -> str:
        return normalize_address(v)

    @model_validator(mode="after")
    def validate_snapshot_vault(self) -> "VaultCandidate":
        if self.snapshot.vault_address != self.vault_address:
            raise ValueError("snapshot.vault_address must match vault_address")
        return self

    @field_serializer("fee")
    def serialize_fee(self, value: int) -> str:
        return _serialize_amount(value)


ReallocationStatus = Literal["PLANNED", "PARTIAL", "NO_CAPACITY"]


class ReallocationPlan(BaseModel):
    vault_address: str
    vault_name: str = ""
    fee: int = Field(ge=0)
    destination_market_id: MarketId
    target_market_params: MarketParams
    requested_amount: int = Field(ge=0)
    planned_amount: int = Field(ge=0)
    fully_covered: bool
    withdrawals: List[ResolvedWithdrawal]
    bundler_calldata: str = Field(description="Hex calldata for the bundler entry point.")
    allocator_calldata: str = Field(description="Hex calldata for a direct allocator call.")
    plan_hash: str = ""

    @field_serializer("fee", "requested_amount", "planned_amount")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)


WithdrawalViolationCode = Literal[
    "DESTINATION_AS_SOURCE",
    "NON_POSITIVE_AMOUNT",
    "UNKNOWN_MARKET",
    "EXCEEDS_MAX_OUTFLOW",
    "EXCEEDS_VAULT_SUPPLY",
    "EXCEEDS_MARKET_LIQUIDITY",
    "EXCEEDS_WITHDRAWAL_LIMIT",
    "EXCEEDS_MAX_INFLOW",
    "EXCEEDS_SUPPLY_CAP_HEADROOM",
]


class WithdrawalViolation(BaseModel):
    market_id: MarketId
    reason_code: WithdrawalViolationCode
    measured: int
    limit: int

    @field_serializer("measured", "limit")
    def serialize_amounts(self, value: int) -> str:
        return _serialize_amount(value)
