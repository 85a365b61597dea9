"""
Discrete distribution engine.

Distributes a one-time lump sum across a network of accounts and then
redistributes overflow in rounds until no account exceeds its maximum
threshold (or the round cap is hit).

Algorithm phases:
1. Initial distribution: serve minimum thresholds first, then fill capacity
2. Overflow calculation: take every balance above its maximum "in transit"
3. Overflow redistribution: hand each overflow to the account's targets by
   normalized allocation weight
4. Repeat 2-3 until total overflow drops below epsilon
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

import numpy as np

from .accounts import Account
from .config import DistributionConfig, resolve_config
from .errors import ConfigError
from .exceptions import NetworkValidationError
from .network import Network, as_network
from .results import DistributionResult, FlowEdge, IterationRecord
from .utils import is_finite_number, normalize_weights, snapshot
from .validation import validate_network

logger = logging.getLogger(__name__)


def _allocate_initial(
    balances: np.ndarray,
    mins: np.ndarray,
    maxs: np.ndarray,
    funding: float,
    trace: Callable[..., None] | None = None,
) -> np.ndarray:
    """
    Phase A on arrays: return new balances after injecting ``funding``.

    Under scarcity the funding is split by relative shortfall; otherwise every
    minimum is filled and the remainder is split by remaining capacity, or
    evenly when no capacity is left.
    """
    trace = trace or logger.debug
    balances = balances.astype(float, copy=True)
    shortfalls = np.maximum(0.0, mins - balances)
    total_shortfall = float(shortfalls.sum())
    trace("Initial distribution of %.2f (total shortfall %.2f)", funding, total_shortfall)

    if funding < total_shortfall:
        trace("Insufficient funds - distributing proportionally to shortfalls")
        balances += funding * shortfalls / total_shortfall
        return balances

    trace("Sufficient funds - meeting all minimums first")
    balances = np.where(shortfalls > 0, mins, balances)

    remaining = funding - total_shortfall
    if remaining <= 0:
        return balances

    capacities = np.maximum(0.0, maxs - balances)
    total_capacity = float(capacities.sum())
    if total_capacity == 0:
        trace("No remaining capacity - splitting %.2f evenly", remaining)
        balances += remaining / len(balances)
        return balances

    trace("Distributing remaining %.2f by capacity", remaining)
    balances += remaining * capacities / total_capacity
    return balances


def _take_overflow(
    balances: np.ndarray, maxs: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Return (clamped balances, overflow per account)."""
    overflows = np.maximum(0.0, balances - maxs)
    return np.minimum(balances, maxs), overflows


def _redistribute(
    accounts: Sequence[Account],
    balances: np.ndarray,
    overflows: np.ndarray,
    trace: Callable[..., None] | None = None,
) -> tuple[np.ndarray, list[FlowEdge]]:
    """Hand each account's overflow to its targets by normalized weight."""
    trace = trace or logger.debug
    index = {acc.id: pos for pos, acc in enumerate(accounts)}
    balances = balances.copy()
    flows: list[FlowEdge] = []

    for pos, source in enumerate(accounts):
        overflow = float(overflows[pos])
        if overflow <= 0:
            continue

        shares = normalize_weights(source.allocations)
        if not shares:
            trace("  %s: no allocations - overflow %.2f lost", source.id, overflow)
            continue

        for target_id, share in shares.items():
            target_pos = index.get(target_id)
            if target_pos is None:
                continue
            amount = overflow * share
            balances[target_pos] += amount
            if amount != 0:
                flows.append(
                    FlowEdge(
                        source.id, target_id, amount, source.allocations[target_id]
                    )
                )
                trace("  %s -> %s: %.2f", source.id, target_id, amount)

    return balances, flows


def _arrays(network: Network) -> tuple[list[str], np.ndarray, np.ndarray, np.ndarray]:
    ids = network.ids
    balances = np.array([acc.balance for acc in network.accounts], dtype=float)
    mins = np.array([acc.min_threshold for acc in network.accounts], dtype=float)
    maxs = np.array([acc.max_threshold for acc in network.accounts], dtype=float)
    return ids, balances, mins, maxs


def _check_funding(funding: float) -> None:
    if not is_finite_number(funding) or funding < 0:
        raise ConfigError(f"funding must be a non-negative finite number, got {funding!r}")


def _validated(network) -> tuple[Network, list[str]]:
    network = as_network(network)
    report = validate_network(network)
    if not report.valid:
        raise NetworkValidationError(network.name, report, report.problem_ids)
    for warning in report.warnings:
        logger.warning(warning)
    return network, list(report.warnings)


def initial_distribution(network: Network | Sequence[Account], funding: float) -> Network:
    """
    Phase A: distribute external funding, prioritizing minimum thresholds.

    Args:
        network: Current network state
        funding: Amount of new funding to distribute (>= 0)

    Returns:
        New network with updated balances; the input is left untouched
    """
    _check_funding(funding)
    network = as_network(network)
    if not len(network):
        return network
    ids, balances, mins, maxs = _arrays(network)
    balances = _allocate_initial(balances, mins, maxs, funding)
    return network.with_balances(snapshot(ids, balances))


def calculate_overflow(network: Network | Sequence[Account]) -> tuple[Network, dict[str, float]]:
    """
    Take every balance above its maximum threshold out of the accounts.

    Returns:
        Tuple of (network with balances clamped to max, overflow per account
        for accounts that had any)
    """
    network = as_network(network)
    ids, balances, _, maxs = _arrays(network)
    clamped, overflows = _take_overflow(balances, maxs)
    taken = {mid: float(o) for mid, o in zip(ids, overflows) if o > 0}
    return network.with_balances(snapshot(ids, clamped)), taken


def redistribute_overflow(
    network: Network | Sequence[Account], overflows: Mapping[str, float]
) -> tuple[Network, list[FlowEdge]]:
    """
    Redistribute overflow amounts according to allocation weights.

    Overflow of an account without outgoing weights is dropped.

    Returns:
        Tuple of (network with received funds added, non-zero transfers)
    """
    network = as_network(network)
    ids, balances, _, _ = _arrays(network)
    amounts = np.array([overflows.get(mid, 0.0) for mid in ids], dtype=float)
    balances, flows = _redistribute(network.accounts, balances, amounts)
    return network.with_balances(snapshot(ids, balances)), flows


def _run_rounds(
    network: Network,
    balances: np.ndarray,
    cfg: DistributionConfig,
) -> tuple[np.ndarray, list[IterationRecord], bool]:
    """Phase B: iterate overflow redistribution until convergence or the cap."""
    trace = logger.info if cfg.verbose else logger.debug
    ids = network.ids
    maxs = np.array([acc.max_threshold for acc in network.accounts], dtype=float)
    records: list[IterationRecord] = []
    converged = False

    for i in range(cfg.max_iterations):
        trace("--- Iteration %d ---", i)

        balances, overflows = _take_overflow(balances, maxs)
        total_overflow = float(overflows.sum())
        round_overflows = {mid: float(o) for mid, o in zip(ids, overflows) if o > 0}

        if total_overflow < cfg.epsilon:
            trace("Converged (overflow %.4f < %s)", total_overflow, cfg.epsilon)
            records.append(
                IterationRecord(
                    iteration=i,
                    balances=snapshot(ids, balances),
                    overflows=round_overflows,
                    total_overflow=total_overflow,
                    converged=True,
                )
            )
            converged = True
            break

        trace("Total overflow: %.2f", total_overflow)
        balances, flows = _redistribute(network.accounts, balances, overflows, trace)
        records.append(
            IterationRecord(
                iteration=i,
                balances=snapshot(ids, balances),
                overflows=round_overflows,
                total_overflow=total_overflow,
                flows=tuple(flows),
                converged=False,
            )
        )

    if not converged:
        logger.warning(
            "Network %s did not converge within %d iterations",
            network.name,
            cfg.max_iterations,
        )

    return balances, records, converged


def run_distribution(
    network: Network | Sequence[Account] | Mapping,
    funding: float,
    config: DistributionConfig | dict | None = None,
    *,
    max_iterations: int | None = None,
    epsilon: float | None = None,
    verbose: bool | None = None,
) -> DistributionResult:
    """
    Run the complete discrete flow funding algorithm.

    Args:
        network: Accounts to fund; never modified
        funding: Lump sum to inject (>= 0)
        config: Optional DistributionConfig or mapping of options
        max_iterations: Override for the round cap
        epsilon: Override for the convergence threshold
        verbose: Log the round-by-round trace at INFO instead of DEBUG

    Returns:
        DistributionResult with initial/final balances and the round trace

    Raises:
        ConfigError: If the options or the funding are invalid
        NetworkValidationError: If the network fails validation
    """
    cfg = resolve_config(
        config,
        DistributionConfig,
        max_iterations=max_iterations,
        epsilon=epsilon,
        verbose=verbose,
    )
    _check_funding(funding)
    network, warnings = _validated(network)
    trace = logger.info if cfg.verbose else logger.debug

    ids, balances, mins, maxs = _arrays(network)
    initial = snapshot(ids, balances)
    for acc in network.accounts:
        trace(
            "  %s: %.2f (min %.2f, max %.2f)",
            acc.id,
            acc.balance,
            acc.min_threshold,
            acc.max_threshold,
        )

    balances = _allocate_initial(balances, mins, maxs, funding, trace)
    balances, records, converged = _run_rounds(network, balances, cfg)
    final = snapshot(ids, balances)

    for mid in ids:
        trace("  %s: %.2f (%+.2f)", mid, final[mid], final[mid] - initial[mid])

    return DistributionResult(
        initial_balances=initial,
        final_balances=final,
        iterations=tuple(records),
        converged=converged,
        total_funding=funding,
        initial_network=network,
        final_network=network.with_balances(final),
        warnings=tuple(warnings),
    )


def run_targeted_distribution(
    network: Network | Sequence[Account] | Mapping,
    config: DistributionConfig | dict | None = None,
    *,
    max_iterations: int | None = None,
    epsilon: float | None = None,
    verbose: bool | None = None,
) -> DistributionResult:
    """
    Run overflow redistribution from the current balances.

    Skips the initial distribution phase; used after funds were added directly
    to chosen accounts to watch the overflow propagate. ``total_funding`` is
    reported as 0.
    """
    cfg = resolve_config(
        config,
        DistributionConfig,
        max_iterations=max_iterations,
        epsilon=epsilon,
        verbose=verbose,
    )
    network, warnings = _validated(network)

    ids, balances, _, _ = _arrays(network)
    initial = snapshot(ids, balances)
    balances, records, converged = _run_rounds(network, balances, cfg)
    final = snapshot(ids, balances)

    return DistributionResult(
        initial_balances=initial,
        final_balances=final,
        iterations=tuple(records),
        converged=converged,
        total_funding=0.0,
        initial_network=network,
        final_network=network.with_balances(final),
        warnings=tuple(warnings),
    )
