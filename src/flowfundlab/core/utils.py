"""
Utility functions for FlowFundLab.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

import numpy as np

# Nominal full scale for allocation weights (percent)
FULL_SCALE = 100.0

# Slack allowed on a participant's summed weights before it is rejected
ALLOCATION_TOLERANCE = 0.01

# Time conversion constants (rates are quoted per month)
SECONDS_PER_MONTH = 30 * 24 * 60 * 60
MONTHS_PER_SECOND = 1 / SECONDS_PER_MONTH


def total_weight(allocations: Mapping[str, float]) -> float:
    """Sum of declared outgoing weights, accumulated in insertion order."""
    total = 0.0
    for weight in allocations.values():
        total += weight
    return total


def normalize_weights(allocations: Mapping[str, float]) -> dict[str, float]:
    """
    Normalize allocation weights by their own sum.

    Only the relative size of each weight matters for redistribution, so
    ``{"b": 30, "c": 10}`` and ``{"b": 75, "c": 25}`` normalize identically.

    Args:
        allocations: Mapping of target id to non-negative weight

    Returns:
        Mapping of target id to normalized share, or an empty dict when the
        total weight is zero (nothing can be redistributed)
    """
    total = total_weight(allocations)
    if total <= 0:
        return {}
    return {target: weight / total for target, weight in allocations.items()}


def unallocated_fraction(allocations: Mapping[str, float]) -> float:
    """Share of the full scale not covered by declared weights."""
    return max(0.0, FULL_SCALE - total_weight(allocations)) / FULL_SCALE


def weight_matrix(ids: list[str], members: Iterable) -> np.ndarray:
    """
    Build the row-normalized allocation matrix for a set of participants.

    Row ``i`` holds participant ``i``'s normalized weights towards every other
    participant, so ``outflows @ matrix`` yields the allocated inflow per
    participant. Rows of participants without weights are all zero.
    """
    index = {member_id: pos for pos, member_id in enumerate(ids)}
    matrix = np.zeros((len(ids), len(ids)), dtype=float)
    for row, member in enumerate(members):
        for target_id, share in normalize_weights(member.allocations).items():
            col = index.get(target_id)
            if col is not None:
                matrix[row, col] += share
    return matrix


def is_finite_number(value) -> bool:
    """Check that a value is a real, finite number (bools excluded)."""
    if isinstance(value, bool):
        return False
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def per_month_to_per_second(amount_per_month: float) -> float:
    """Convert a monthly rate to a per-second rate."""
    return amount_per_month * MONTHS_PER_SECOND


def per_second_to_per_month(amount_per_second: float) -> float:
    """Convert a per-second rate to a monthly rate."""
    return amount_per_second / MONTHS_PER_SECOND


def snapshot(ids: list[str], values: np.ndarray) -> dict[str, float]:
    """Freeze an array of per-participant values into a plain id -> float dict."""
    return {member_id: float(value) for member_id, value in zip(ids, values)}
