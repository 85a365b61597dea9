"""
Results and trace structures for FlowFundLab.

Both engines return plain data: the initial state, an ordered per-round
trace and the final state. The pandas views are conveniences for analysis
and never feed back into a computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NamedTuple

import pandas as pd

from .network import FlowNetwork, Network
from .nodes import FlowZone


class FlowEdge(NamedTuple):
    """
    A transfer between two participants.

    Attributes:
        source: Id of the sending participant
        target: Id of the receiving participant
        amount: Amount moved (discrete) or flow rate per month (continuous)
        weight: Declared allocation weight behind the transfer, when known
    """

    source: str
    target: str
    amount: float
    weight: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "amount": self.amount,
            "weight": self.weight,
        }


def _edges_frame(edges, extra: dict[str, Any] | None = None) -> pd.DataFrame:
    columns = ["source", "target", "amount", "weight"]
    rows = []
    for edge in edges:
        row = dict(extra or {})
        row.update(edge.to_dict())
        rows.append(row)
    return pd.DataFrame(rows, columns=list((extra or {}).keys()) + columns)


@dataclass(frozen=True)
class IterationRecord:
    """
    One round of discrete overflow redistribution.

    Attributes:
        iteration: Round index (0-based)
        balances: Balances after this round's redistribution (after clamping
            only, on the converged round)
        overflows: Overflow taken from each account this round
        total_overflow: Sum of ``overflows``
        flows: Non-zero transfers performed this round, in source order
        converged: Whether total overflow fell below epsilon this round
    """

    iteration: int
    balances: dict[str, float]
    overflows: dict[str, float]
    total_overflow: float
    flows: tuple[FlowEdge, ...] = ()
    converged: bool = False

    def flow_map(self) -> dict[tuple[str, str], float]:
        """Transfers keyed by (source, target)."""
        return {(edge.source, edge.target): edge.amount for edge in self.flows}

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "balances": dict(self.balances),
            "overflows": dict(self.overflows),
            "total_overflow": self.total_overflow,
            "flows": [edge.to_dict() for edge in self.flows],
            "converged": self.converged,
        }


@dataclass(frozen=True)
class DistributionResult:
    """
    Complete result of a discrete distribution run.

    Attributes:
        initial_balances: Balances before any funding was applied
        final_balances: Balances after the last round
        iterations: Ordered per-round records
        converged: Whether redistribution converged within the round cap
        total_funding: External funding injected (0 for targeted runs)
        initial_network: Input network snapshot
        final_network: Network holding ``final_balances``
        warnings: Validation warnings raised for the input network
    """

    initial_balances: dict[str, float]
    final_balances: dict[str, float]
    iterations: tuple[IterationRecord, ...]
    converged: bool
    total_funding: float
    initial_network: Network | None = None
    final_network: Network | None = None
    warnings: tuple[str, ...] = ()

    @property
    def iteration_count(self) -> int:
        return len(self.iterations)

    @property
    def total_overflow_history(self) -> list[float]:
        return [record.total_overflow for record in self.iterations]

    @property
    def initial_total(self) -> float:
        return sum(self.initial_balances.values())

    @property
    def final_total(self) -> float:
        return sum(self.final_balances.values())

    def balances_frame(self) -> pd.DataFrame:
        """
        Balances per round as a DataFrame.

        The first row (index -1) holds the initial balances; row ``i`` holds the
        balances recorded for round ``i``.
        """
        rows = [self.initial_balances] + [rec.balances for rec in self.iterations]
        index = pd.Index(range(-1, len(self.iterations)), name="iteration")
        return pd.DataFrame(rows, index=index, columns=list(self.initial_balances))

    def overflow_frame(self) -> pd.DataFrame:
        """Overflow taken from each account per round (0 where none)."""
        index = pd.Index(range(len(self.iterations)), name="iteration")
        frame = pd.DataFrame(
            [rec.overflows for rec in self.iterations],
            index=index,
            columns=list(self.initial_balances),
        )
        return frame.fillna(0.0)

    def flows_frame(self) -> pd.DataFrame:
        """Every recorded transfer, one row per (iteration, source, target)."""
        frames = [
            _edges_frame(rec.flows, {"iteration": rec.iteration})
            for rec in self.iterations
            if rec.flows
        ]
        if not frames:
            return _edges_frame([], {"iteration": None})
        return pd.concat(frames, ignore_index=True)

    def summary(self) -> dict[str, Any]:
        """Lightweight summary for API/CLI usage."""
        return {
            "converged": self.converged,
            "iteration_count": self.iteration_count,
            "total_funding": self.total_funding,
            "initial_total": self.initial_total,
            "final_total": self.final_total,
            "warnings": list(self.warnings),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "initial_balances": dict(self.initial_balances),
            "final_balances": dict(self.final_balances),
            "iterations": [rec.to_dict() for rec in self.iterations],
            "converged": self.converged,
            "total_funding": self.total_funding,
            "iteration_count": self.iteration_count,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class EquilibriumRound:
    """
    One synchronous round of the continuous fixed-point iteration.

    Attributes:
        iteration: Round index (0-based)
        outflows: Outflow per node computed from the previous round's inflows
        inflows: New total inflow per node produced by this round
        max_change: Largest absolute inflow change across nodes
        converged: Whether ``max_change`` fell below epsilon
    """

    iteration: int
    outflows: dict[str, float]
    inflows: dict[str, float]
    max_change: float
    converged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "outflows": dict(self.outflows),
            "inflows": dict(self.inflows),
            "max_change": self.max_change,
            "converged": self.converged,
        }


@dataclass(frozen=True)
class NodeState:
    """Steady-state rates of a single node."""

    id: str
    external_inflow: float
    total_inflow: float
    total_outflow: float
    zone: FlowZone

    @property
    def retained(self) -> float:
        """Rate the node keeps for itself."""
        return self.total_inflow - self.total_outflow

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "external_inflow": self.external_inflow,
            "total_inflow": self.total_inflow,
            "total_outflow": self.total_outflow,
            "retained": self.retained,
            "zone": self.zone.value,
        }


@dataclass(frozen=True)
class OverflowSink:
    """Virtual collector of outflow not covered by declared weights."""

    total_inflow: float
    id: str = "overflow"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "total_inflow": self.total_inflow}


@dataclass(frozen=True)
class EquilibriumResult:
    """
    Complete result of a continuous steady-state calculation.

    Attributes:
        initial_inflows: Starting inflow per node (its external inflow)
        nodes: Final state per node, in network order
        edges: Per-edge flow rates derived from final outflows
        overflow_sink: Unallocated outflow collector, or None below epsilon
        rounds: Ordered per-round trace
        converged: Whether the iteration converged within the round cap
        total_external_inflow: Sum of external inflows
        total_network_capacity: Sum of max thresholds
        total_network_needs: Sum of min thresholds
        network: Input network snapshot
        warnings: Validation warnings raised for the input network
    """

    initial_inflows: dict[str, float]
    nodes: dict[str, NodeState]
    edges: tuple[FlowEdge, ...]
    overflow_sink: OverflowSink | None
    rounds: tuple[EquilibriumRound, ...]
    converged: bool
    total_external_inflow: float
    total_network_capacity: float
    total_network_needs: float
    network: FlowNetwork | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def iterations(self) -> int:
        return len(self.rounds)

    @property
    def final_inflows(self) -> dict[str, float]:
        return {node_id: state.total_inflow for node_id, state in self.nodes.items()}

    @property
    def final_outflows(self) -> dict[str, float]:
        return {node_id: state.total_outflow for node_id, state in self.nodes.items()}

    def nodes_frame(self) -> pd.DataFrame:
        """Steady-state rates per node, indexed by node id."""
        rows = [state.to_dict() for state in self.nodes.values()]
        frame = pd.DataFrame(
            rows,
            columns=[
                "id",
                "external_inflow",
                "total_inflow",
                "total_outflow",
                "retained",
                "zone",
            ],
        )
        return frame.set_index("id")

    def edges_frame(self) -> pd.DataFrame:
        return _edges_frame(self.edges)

    def trace_frame(self) -> pd.DataFrame:
        """Total inflow per node after each round (row -1 is the initial state)."""
        rows = [self.initial_inflows] + [rnd.inflows for rnd in self.rounds]
        index = pd.Index(range(-1, len(self.rounds)), name="iteration")
        return pd.DataFrame(rows, index=index, columns=list(self.initial_inflows))

    def summary(self) -> dict[str, Any]:
        return {
            "converged": self.converged,
            "iterations": self.iterations,
            "total_external_inflow": self.total_external_inflow,
            "total_network_capacity": self.total_network_capacity,
            "total_network_needs": self.total_network_needs,
            "overflow": self.overflow_sink.total_inflow if self.overflow_sink else 0.0,
            "warnings": list(self.warnings),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [state.to_dict() for state in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
            "overflow_node": self.overflow_sink.to_dict() if self.overflow_sink else None,
            "rounds": [rnd.to_dict() for rnd in self.rounds],
            "converged": self.converged,
            "iterations": self.iterations,
            "total_external_inflow": self.total_external_inflow,
            "total_network_capacity": self.total_network_capacity,
            "total_network_needs": self.total_network_needs,
            "warnings": list(self.warnings),
        }
