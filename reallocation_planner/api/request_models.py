from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator

from reallocation_planner.core.models import (
    CapacitySnapshot,
    LiveMarketRead,
    MarketId,
    MarketParams,
    PlannedWithdrawal,
    ReallocationPlan,
    ReallocationStatus,
    WithdrawalViolation,
    normalize_address,
)

_EXAMPLE_MARKET_A = "0x" + "aa" * 32
_EXAMPLE_MARKET_C = "0x" + "cc" * 32


def _example_params(seed: str) -> dict[str, str]:
    return {
        "loan_token": "0x" + "01" * 20,
        "collateral_token": "0x" + seed * 20,
        "oracle": "0x" + "03" * 20,
        "irm": "0x" + "04" * 20,
        "lltv": "860000000000000000",
    }


_EXAMPLE_SNAPSHOT = {
    "vault_address": "0x" + "11" * 20,
    "allocations": [
        {
            "market_id": _EXAMPLE_MARKET_A,
            "market_params": _example_params("0a"),
            "vault_supply": "100",
            "market_liquidity": "100",
            "supply_cap": "1000",
        },
        {
            "market_id": _EXAMPLE_MARKET_C,
            "market_params": _example_params("0c"),
            "vault_supply": "0",
            "market_liquidity": "5",
            "supply_cap": "200",
        },
    ],
    "flow_caps": {
        _EXAMPLE_MARKET_A: {"max_in": "0", "max_out": "100"},
        _EXAMPLE_MARKET_C: {"max_in": "120", "max_out": "0"},
    },
}


class CapacityRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "snapshot": _EXAMPLE_SNAPSHOT,
                "destination_market_id": _EXAMPLE_MARKET_C,
            }
        }
    }

    snapshot: CapacitySnapshot = Field(description="Vault allocation and flow-cap snapshot.")
    destination_market_id: MarketId = Field(description="Market that needs liquidity.")
    live_reads: Optional[Dict[MarketId, LiveMarketRead]] = Field(
        default=None,
        description="Optional same-block on-chain reads replacing cached caps and balances.",
    )


class PlanRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "example": {
                "allocator_address": "0x" + "22" * 20,
                "fee": "0",
                "snapshot": _EXAMPLE_SNAPSHOT,
                "destination_market_id": _EXAMPLE_MARKET_C,
                "requested_amount": "80",
            }
        }
    }

    allocator_address: str = Field(description="Public allocator contract address.")
    fee: int = Field(default=0, ge=0, description="Reallocation fee, passed through unmodified.")
    vault_name: str = Field(default="", description="Display name of the vault.")
    snapshot: CapacitySnapshot
    destination_market_id: MarketId
    destination_market_params: Optional[MarketParams] = Field(
        default=None,
        description="Destination params; looked up from the allocation list when omitted.",
    )
    requested_amount: int = Field(ge=0, description="Amount needed, smallest asset unit.")
    live_reads: Optional[Dict[MarketId, LiveMarketRead]] = None

    @field_validator("allocator_address")
    @classmethod
    def validate_allocator_address(cls, v: str) -> str:
        return normalize_address(v)


class PlanResponse(BaseModel):
    status: ReallocationStatus
    plan: Optional[ReallocationPlan] = None


class ValidateRequest(BaseModel):
    snapshot: CapacitySnapshot
    destination_market_id: MarketId
    withdrawals: List[PlannedWithdrawal] = Field(
        description="Hand-entered withdrawals to check against current limits."
    )
    live_reads: Optional[Dict[MarketId, LiveMarketRead]] = None


class ValidateResponse(BaseModel):
    valid: bool
    violations: List[WithdrawalViolation] = Field(default_factory=list)


class SourcingRequest(BaseModel):
    allocator_address: str
    destination_market_id: MarketId
    destination_market_params: MarketParams = Field(
        description="Params of the market needing liquidity; it may be absent from vaults."
    )
    extra_amount_needed: int = Field(ge=0)
    vaults: List[Dict[str, Any]] = Field(
        description="Vault payloads in the remote index shape (publicAllocatorConfig, state)."
    )

    @field_validator("allocator_address")
    @classmethod
    def validate_allocator_address(cls, v: str) -> str:
        return normalize_address(v)


class RankedVaultSummary(BaseModel):
    vault_address: str
    name: str
    pullable: int

    @field_serializer("pullable")
    def serialize_pullable(self, value: int) -> str:
        return str(value)


class SourcingResponse(BaseModel):
    status: ReallocationStatus
    total_available_liquidity: int
    can_source_liquidity: bool
    vaults: List[RankedVaultSummary] = Field(default_factory=list)
    plan: Optional[ReallocationPlan] = None

    @field_serializer("total_available_liquidity")
    def serialize_total(self, value: int) -> str:
        return str(value)

