"""
FILE: reallocation_planner/core/calldata.py
ABI encoding of ``reallocateTo`` for the bundler and for the allocator itself.
"""

from collections.abc import Sequence

from eth_abi import encode
from web3 import Web3

from reallocation_planner.core.models import (
    MarketParams,
    PlanningPreconditionError,
    ResolvedWithdrawal,
)

# Withdrawal amounts are encoded as uint128 fee and lltv as uint256.
MAX_WITHDRAWAL_AMOUNT = 2**128 - 1
MAX_UINT256 = 2**256 - 1

MARKET_PARAMS_TYPE = "(address,address,address,address,uint256)"
WITHDRAWAL_TYPE = f"({MARKET_PARAMS_TYPE},uint128)"

BUNDLER_REALLOCATE_ARG_TYPES = [
    "address",
    "address",
    "uint256",
    f"{WITHDRAWAL_TYPE}[]",
    MARKET_PARAMS_TYPE,
]
ALLOCATOR_REALLOCATE_ARG_TYPES = [
    "address",
    f"{WITHDRAWAL_TYPE}[]",
    MARKET_PARAMS_TYPE,
]


def function_selector(name: str, arg_types: Sequence[str]) -> bytes:
    signature = f"{name}({','.join(arg_types)})"
    return bytes(Web3.keccak(text=signature)[:4])


BUNDLER_REALLOCATE_SELECTOR = function_selector("reallocateTo", BUNDLER_REALLOCATE_ARG_TYPES)
ALLOCATOR_REALLOCATE_SELECTOR = function_selector("reallocateTo", ALLOCATOR_REALLOCATE_ARG_TYPES)


def require_encodable(
    fee: int,
    withdrawals: Sequence[ResolvedWithdrawal],
    supply_market_params: MarketParams,
) -> None:
    """Reject amounts the ABI types cannot hold before any encoding starts."""
    if fee > MAX_UINT256:
        raise PlanningPreconditionError("fee does not fit in uint256")
    for params in [supply_market_params, *(item.market_params for item in withdrawals)]:
        if params.lltv > MAX_UINT256:
            raise PlanningPreconditionError("lltv does not fit in uint256")
    for item in withdrawals:
        if item.amount > MAX_WITHDRAWAL_AMOUNT:
            raise PlanningPreconditionError(
                f"withdrawal of {item.amount} from market {item.sort_key} "
                "does not fit in uint128"
            )


def _market_params_arg(params: MarketParams) -> tuple:
    return (
        Web3.to_checksum_address(params.loan_token),
        Web3.to_checksum_address(params.collateral_token),
        Web3.to_checksum_address(params.oracle),
        Web3.to_checksum_address(params.irm),
        params.lltv,
    )


def _withdrawals_arg(withdrawals: Sequence[ResolvedWithdrawal]) -> list[tuple]:
    # sort_key orders the list upstream and is not part of the payload.
    return [(_market_params_arg(item.market_params), item.amount) for item in withdrawals]


def build_bundler_reallocate_calldata(
    allocator_address: str,
    vault_address: str,
    fee: int,
    withdrawals: Sequence[ResolvedWithdrawal],
    supply_market_params: MarketParams,
) -> bytes:
    """Bundler ``reallocateTo``; can be prepended to a multicall batch."""
    args = encode(
        BUNDLER_REALLOCATE_ARG_TYPES,
        [
            Web3.to_checksum_address(allocator_address),
            Web3.to_checksum_address(vault_address),
            fee,
            _withdrawals_arg(withdrawals),
            _market_params_arg(supply_market_params),
        ],
    )
    return BUNDLER_REALLOCATE_SELECTOR + args


def build_allocator_reallocate_calldata(
    vault_address: str,
    withdrawals: Sequence[ResolvedWithdrawal],
    supply_market_params: MarketParams,
) -> bytes:
    """Allocator ``reallocateTo`` for a standalone call; the fee travels as call value."""
    args = encode(
        ALLOCATOR_REALLOCATE_ARG_TYPES,
        [
            Web3.to_checksum_address(vault_address),
            _withdrawals_arg(withdrawals),
            _market_params_arg(supply_market_params),
        ],
    )
    return ALLOCATOR_REALLOCATE_SELECTOR + args


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()
