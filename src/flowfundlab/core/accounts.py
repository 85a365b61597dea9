"""
Account definitions and status classification for FlowFundLab.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType

from .utils import normalize_weights, total_weight

# Absolute band around the minimum threshold that counts as "at minimum"
MINIMUM_EPSILON = 0.01


class AccountStatus(Enum):
    """Account status classification (discrete mode)."""

    DEFICIT = "deficit"  # Below the minimum threshold
    MINIMUM = "minimum"  # Sitting on the minimum threshold
    HEALTHY = "healthy"  # Between minimum and maximum
    OVERFLOW = "overflow"  # At or above the maximum threshold


def classify_status(
    balance: float, min_threshold: float, max_threshold: float
) -> AccountStatus:
    """
    Classify a balance against its thresholds.

    The checks run in priority order: deficit, overflow, minimum, healthy.
    Overflow is tested before the minimum band, so an account whose minimum
    and maximum coincide reports ``OVERFLOW`` when sitting on both.
    """
    if balance < min_threshold:
        return AccountStatus.DEFICIT
    if balance >= max_threshold:
        return AccountStatus.OVERFLOW
    if abs(balance - min_threshold) < MINIMUM_EPSILON:
        return AccountStatus.MINIMUM
    return AccountStatus.HEALTHY


@dataclass(frozen=True)
class Account:
    """
    A participant in a discrete flow funding network.

    Derived quantities (shortfall, capacity, overflow, status) are computed
    from ``balance`` on access and are therefore always consistent with it.
    Changing the balance means building a new account via ``with_balance``.

    Attributes:
        id: Unique account identifier
        name: Human-readable account name
        balance: Current funds held
        min_threshold: Minimum viable funding level
        max_threshold: Level beyond which funds overflow
        allocations: Target account id -> weight (nominally percent)
    """

    id: str
    name: str
    balance: float
    min_threshold: float
    max_threshold: float
    allocations: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only copy of the caller's mapping
        object.__setattr__(
            self, "allocations", MappingProxyType(dict(self.allocations))
        )

    @property
    def shortfall(self) -> float:
        """Funds needed to reach the minimum threshold."""
        return max(0.0, self.min_threshold - self.balance)

    @property
    def capacity(self) -> float:
        """Funds that can be added before reaching the maximum threshold."""
        return max(0.0, self.max_threshold - self.balance)

    @property
    def overflow(self) -> float:
        """Funds beyond the maximum threshold."""
        return max(0.0, self.balance - self.max_threshold)

    @property
    def status(self) -> AccountStatus:
        return classify_status(self.balance, self.min_threshold, self.max_threshold)

    @property
    def total_allocation(self) -> float:
        return total_weight(self.allocations)

    def normalized_allocations(self) -> dict[str, float]:
        return normalize_weights(self.allocations)

    def with_balance(self, balance: float) -> Account:
        """Return a copy of this account holding ``balance``."""
        return replace(self, balance=balance)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "balance": self.balance,
            "min_threshold": self.min_threshold,
            "max_threshold": self.max_threshold,
            "allocations": dict(self.allocations),
        }

    def __str__(self) -> str:
        return f"{self.id} ({self.name})"
