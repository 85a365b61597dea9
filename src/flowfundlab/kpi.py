"""
KPI calculation utilities for flow funding analysis.

This module provides standalone functions for summarizing networks and solver
results. All functions are read-only and return pandas Series, DataFrames or
plain dicts.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .core.accounts import AccountStatus
from .core.network import Network
from .core.nodes import FlowZone
from .core.results import DistributionResult, EquilibriumResult


def network_totals(network: Network) -> pd.Series:
    """
    Calculate network-level totals.

    Args:
        network: Discrete network

    Returns:
        Series with total funds, shortfall, capacity and overflow
    """
    return pd.Series(
        {
            "total_funds": network.total_funds,
            "total_shortfall": network.total_shortfall,
            "total_capacity": network.total_capacity,
            "total_overflow": network.total_overflow,
        },
        name=network.name,
    )


def status_counts(network: Network) -> pd.Series:
    """Number of accounts per status (every status present, zeros included)."""
    counts = {status.value: 0 for status in AccountStatus}
    for acc in network.accounts:
        counts[acc.status.value] += 1
    return pd.Series(counts, name="accounts")


def distribution_summary(before: Network, after: Network) -> dict:
    """
    Summarize the balance changes between two network states.

    Args:
        before: Network before distribution
        after: Network after distribution

    Returns:
        Dict with ``total_distributed``, ``accounts_changed`` and a ``changes``
        DataFrame (account_id, name, before, after, delta) holding only
        accounts whose balance moved
    """
    rows = []
    for acc in after.accounts:
        prior = before.get(acc.id)
        start = prior.balance if prior is not None else 0.0
        delta = acc.balance - start
        if delta != 0:
            rows.append(
                {
                    "account_id": acc.id,
                    "name": acc.name,
                    "before": start,
                    "after": acc.balance,
                    "delta": delta,
                }
            )

    changes = pd.DataFrame(
        rows, columns=["account_id", "name", "before", "after", "delta"]
    )
    return {
        "total_distributed": float(changes["delta"].sum()) if rows else 0.0,
        "accounts_changed": len(rows),
        "changes": changes,
    }


def funds_lost(result: DistributionResult) -> float:
    """
    Overflow dropped by accounts without outgoing allocations.

    Equals initial funds plus injected funding minus final funds; zero for a
    network where every overflowing account allocates its overflow.
    """
    lost = result.initial_total + result.total_funding - result.final_total
    return max(0.0, lost)


def convergence_profile(result: DistributionResult | EquilibriumResult) -> pd.Series:
    """
    Per-round convergence measure.

    Discrete results yield total overflow per round, continuous results the
    maximum inflow change per round.
    """
    if isinstance(result, DistributionResult):
        values = result.total_overflow_history
        name = "total_overflow"
    else:
        values = [rnd.max_change for rnd in result.rounds]
        name = "max_change"
    index = pd.Index(range(len(values)), name="iteration")
    return pd.Series(values, index=index, name=name, dtype=float)


def zone_counts(result: EquilibriumResult) -> pd.Series:
    """Number of nodes per flow zone at steady state."""
    counts = {zone.value: 0 for zone in FlowZone}
    for state in result.nodes.values():
        counts[state.zone.value] += 1
    return pd.Series(counts, name="nodes")


def retention_rates(result: EquilibriumResult) -> pd.Series:
    """
    Share of total inflow each node retains at steady state.

    Nodes without inflow report a retention rate of 1.0.
    """
    inflow = np.array([s.total_inflow for s in result.nodes.values()], dtype=float)
    retained = np.array([s.retained for s in result.nodes.values()], dtype=float)

    # Avoid division by zero
    rates = np.divide(
        retained, inflow, out=np.ones_like(inflow), where=inflow > 0
    )

    return pd.Series(rates, index=list(result.nodes), name="retention_rate")
