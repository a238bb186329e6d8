from dataclasses import dataclass
from typing import Any, Optional

from reallocation_planner.core.models import PlanningPreconditionError


@dataclass(frozen=True)
class SaturatingAmount:
    """Non-negative integer quantity whose clamps and subtractions never go below zero."""

    value: int = 0

    @classmethod
    def of(cls, value: int) -> "SaturatingAmount":
        return cls(value if value > 0 else 0)

    def bounded_by(self, *limits: Optional[int]) -> "SaturatingAmount":
        bounded = self.value
        for limit in limits:
            if limit is None:
                continue
            if limit < bounded:
                bounded = limit
        return SaturatingAmount.of(bounded)

    def saturating_sub(self, other: "int | SaturatingAmount") -> "SaturatingAmount":
        amount = other.value if isinstance(other, SaturatingAmount) else other
        return SaturatingAmount.of(self.value - amount)

    def __add__(self, other: "SaturatingAmount") -> "SaturatingAmount":
        return SaturatingAmount.of(self.value + other.value)

    @property
    def is_zero(self) -> bool:
        return self.value == 0


def headroom(cap: int, used: int) -> SaturatingAmount:
    return SaturatingAmount.of(cap).saturating_sub(used)


def require_amount(value: Any, *, field_name: str) -> int:
    # bool is an int subclass; reject it along with floats, NaN and infinity.
    if isinstance(value, bool) or not isinstance(value, int):
        raise PlanningPreconditionError(f"{field_name} must be an integer amount")
    if value < 0:
        raise PlanningPreconditionError(f"{field_name} must be non-negative")
    return value
