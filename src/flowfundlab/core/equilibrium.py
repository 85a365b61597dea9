"""
Continuous equilibrium engine.

Finds the steady state of per-month flow rates in which every node's total
inflow equals its external inflow plus the allocated outflow of every other
node, with outflows given by the progressive zone function.

Each round is a synchronous (Jacobi) update: all outflows are computed from
the previous round's inflows, then all inflows are recomputed at once. No
node sees another node's value from the same round.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

import numpy as np

from .config import EquilibriumConfig, resolve_config
from .exceptions import NetworkValidationError
from .network import FlowNetwork, as_flow_network
from .nodes import FlowNode, calculate_outflow, get_flow_zone
from .results import EquilibriumResult, EquilibriumRound, FlowEdge, NodeState, OverflowSink
from .utils import (
    normalize_weights,
    per_month_to_per_second,
    snapshot,
    unallocated_fraction,
    weight_matrix,
)
from .validation import validate_network

logger = logging.getLogger(__name__)


def _outflows(nodes: Sequence[FlowNode], inflows: np.ndarray) -> np.ndarray:
    return np.array(
        [
            calculate_outflow(float(inflow), node.min_threshold, node.max_threshold)
            for node, inflow in zip(nodes, inflows)
        ],
        dtype=float,
    )


def _edges(nodes: Sequence[FlowNode], outflows: np.ndarray) -> list[FlowEdge]:
    """Per-edge flow rates derived from final outflows."""
    edges: list[FlowEdge] = []
    for node, outflow in zip(nodes, outflows):
        if outflow <= 0:
            continue
        for target_id, share in normalize_weights(node.allocations).items():
            rate = float(outflow) * share
            if rate > 0:
                edges.append(FlowEdge(node.id, target_id, rate, node.allocations[target_id]))
    return edges


def _unallocated(nodes: Sequence[FlowNode], outflows: np.ndarray) -> float:
    """Outflow not covered by declared weights, summed across nodes."""
    total = 0.0
    for node, outflow in zip(nodes, outflows):
        total += float(outflow) * unallocated_fraction(node.allocations)
    return total


def calculate_steady_state(
    network: FlowNetwork | Sequence[FlowNode] | Mapping,
    config: EquilibriumConfig | dict | None = None,
    *,
    max_iterations: int | None = None,
    epsilon: float | None = None,
    verbose: bool | None = None,
) -> EquilibriumResult:
    """
    Calculate the steady-state flow equilibrium by fixed-point iteration.

    Args:
        network: Flow nodes with external inflows; never modified
        config: Optional EquilibriumConfig or mapping of options
        max_iterations: Override for the round cap
        epsilon: Override for the convergence threshold (per month)
        verbose: Log the round-by-round trace at INFO instead of DEBUG

    Returns:
        EquilibriumResult with final node rates, edges, overflow sink and trace

    Raises:
        ConfigError: If the options are invalid
        NetworkValidationError: If the network fails validation
    """
    cfg = resolve_config(
        config,
        EquilibriumConfig,
        max_iterations=max_iterations,
        epsilon=epsilon,
        verbose=verbose,
    )
    network = as_flow_network(network)
    report = validate_network(network)
    if not report.valid:
        raise NetworkValidationError(network.name, report, report.problem_ids)
    for warning in report.warnings:
        logger.warning(warning)

    trace = logger.info if cfg.verbose else logger.debug
    nodes = network.nodes
    ids = network.ids
    external = np.array([node.external_inflow for node in nodes], dtype=float)
    shares = weight_matrix(ids, nodes)

    for node in nodes:
        trace(
            "  %s: external=%.2f/mo (min=%.2f, max=%.2f)",
            node.id,
            node.external_inflow,
            node.min_threshold,
            node.max_threshold,
        )

    inflows = external.copy()
    outflows = np.zeros_like(inflows)
    rounds: list[EquilibriumRound] = []
    converged = False

    for i in range(cfg.max_iterations):
        outflows = _outflows(nodes, inflows)
        new_inflows = external + outflows @ shares
        max_change = float(np.max(np.abs(new_inflows - inflows)))
        inflows = new_inflows
        done = max_change < cfg.epsilon

        rounds.append(
            EquilibriumRound(
                iteration=i,
                outflows=snapshot(ids, outflows),
                inflows=snapshot(ids, inflows),
                max_change=max_change,
                converged=done,
            )
        )
        trace("Iteration %d: max change %.4f/mo", i, max_change)

        if done:
            converged = True
            trace("Converged after %d iterations", i + 1)
            break

    if not converged:
        logger.warning(
            "Network %s did not converge within %d iterations",
            network.name,
            cfg.max_iterations,
        )

    states = {
        node.id: NodeState(
            id=node.id,
            external_inflow=float(node.external_inflow),
            total_inflow=float(inflow),
            total_outflow=float(outflow),
            zone=get_flow_zone(float(inflow), node.min_threshold, node.max_threshold),
        )
        for node, inflow, outflow in zip(nodes, inflows, outflows)
    }

    unallocated = _unallocated(nodes, outflows)
    sink = OverflowSink(total_inflow=unallocated) if unallocated > cfg.epsilon else None

    for state in states.values():
        trace(
            "  %s: in=%.2f/mo out=%.2f/mo retain=%.2f/mo [%s]",
            state.id,
            state.total_inflow,
            state.total_outflow,
            state.retained,
            state.zone.value,
        )
    if sink is not None:
        trace("  Overflow: %.2f/mo (unallocated)", sink.total_inflow)

    return EquilibriumResult(
        initial_inflows=snapshot(ids, external),
        nodes=states,
        edges=tuple(_edges(nodes, outflows)),
        overflow_sink=sink,
        rounds=tuple(rounds),
        converged=converged,
        total_external_inflow=network.total_external_inflow,
        total_network_capacity=network.total_network_capacity,
        total_network_needs=network.total_network_needs,
        network=network,
        warnings=tuple(report.warnings),
    )


def accumulate_balances(
    result: EquilibriumResult,
    delta_seconds: float,
    balances: Mapping[str, float] | None = None,
) -> dict[str, float]:
    """
    Advance the visualization-only balances by ``delta_seconds``.

    Each node accumulates its net rate (inflow minus outflow, converted from
    per month to per second) over the elapsed time. The values are purely a
    display quantity and never feed back into the equilibrium.

    Args:
        result: Steady-state result providing the rates
        delta_seconds: Elapsed simulation time in seconds
        balances: Previous balances (defaults to 0 for every node)

    Returns:
        New balances keyed by node id
    """
    balances = balances or {}
    updated: dict[str, float] = {}
    for node_id, state in result.nodes.items():
        net_per_second = per_month_to_per_second(state.total_inflow) - per_month_to_per_second(
            state.total_outflow
        )
        updated[node_id] = balances.get(node_id, 0.0) + net_per_second * delta_seconds
    return updated
