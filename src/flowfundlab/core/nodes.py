"""
Flow nodes and the progressive outflow function for continuous mode.

In continuous mode thresholds bound monthly flow *rates* rather than
balances. A node's outflow grows with its total inflow through three zones:

    Deficit zone   (inflow < min):               outflow = 0
    Building zone  (min <= inflow < 1.5 * max):  outflow = (inflow - min) / (1.5 * max - min) * (0.5 * max)
    Capacity zone  (inflow >= 1.5 * max):        outflow = inflow - max

The building-zone ramp starts at zero and reaches ``0.5 * max`` exactly at the
capacity threshold, where the capacity formula also gives ``1.5 * max - max``,
so the function is continuous and monotonically increasing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from .utils import normalize_weights, total_weight

# Capacity threshold as a multiple of the maximum threshold
CAPACITY_MULTIPLIER = 1.5


class FlowZone(Enum):
    """Progressive outflow zones."""

    DEFICIT = "deficit"
    BUILDING = "building"
    CAPACITY = "capacity"


def capacity_threshold(max_threshold: float) -> float:
    """Inflow rate at which a node starts sharing everything above max."""
    return CAPACITY_MULTIPLIER * max_threshold


def get_flow_zone(
    total_inflow: float, min_threshold: float, max_threshold: float
) -> FlowZone:
    """Determine which zone a total inflow rate falls in."""
    if total_inflow < min_threshold:
        return FlowZone.DEFICIT
    if total_inflow < capacity_threshold(max_threshold):
        return FlowZone.BUILDING
    return FlowZone.CAPACITY


def calculate_outflow(
    total_inflow: float, min_threshold: float, max_threshold: float
) -> float:
    """
    Calculate the progressive outflow rate for a total inflow rate.

    Args:
        total_inflow: External inflow plus all incoming allocated rates
        min_threshold: Needs level
        max_threshold: Capacity level

    Returns:
        Outflow rate shared with allocation targets
    """
    cap = capacity_threshold(max_threshold)

    if total_inflow < min_threshold:
        return 0.0

    if total_inflow >= cap:
        return total_inflow - max_threshold

    building_range = cap - min_threshold
    if building_range == 0:
        # min == 1.5 * max; only reachable with min == max == 0
        return total_inflow - max_threshold

    excess = total_inflow - min_threshold
    target_outflow = 0.5 * max_threshold
    return (excess / building_range) * target_outflow


@dataclass(frozen=True)
class FlowNode:
    """
    A participant in a continuous flow network.

    Attributes:
        id: Unique node identifier
        name: Human-readable node name
        external_inflow: Rate contributed by outside funders (per month)
        min_threshold: Needs level (per month)
        max_threshold: Capacity level (per month)
        allocations: Target node id -> weight (percent, summing to <= 100)
    """

    id: str
    name: str
    external_inflow: float
    min_threshold: float
    max_threshold: float
    allocations: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, "allocations", MappingProxyType(dict(self.allocations))
        )

    @property
    def capacity_threshold(self) -> float:
        return capacity_threshold(self.max_threshold)

    @property
    def total_allocation(self) -> float:
        return total_weight(self.allocations)

    def normalized_allocations(self) -> dict[str, float]:
        return normalize_weights(self.allocations)

    def zone(self, total_inflow: float) -> FlowZone:
        return get_flow_zone(total_inflow, self.min_threshold, self.max_threshold)

    def outflow(self, total_inflow: float) -> float:
        return calculate_outflow(total_inflow, self.min_threshold, self.max_threshold)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "external_inflow": self.external_inflow,
            "min_threshold": self.min_threshold,
            "max_threshold": self.max_threshold,
            "allocations": dict(self.allocations),
        }

    def __str__(self) -> str:
        return f"{self.id} ({self.name})"
