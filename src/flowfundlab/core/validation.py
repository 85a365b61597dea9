"""
Validation and reporting utilities for FlowFundLab.

Provides structured validation reports for discrete and continuous networks.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .network import FlowNetwork, Network, as_flow_network, as_network
from .nodes import FlowNode
from .utils import ALLOCATION_TOLERANCE, FULL_SCALE, is_finite_number, total_weight


@dataclass
class ValidationReport:
    """
    Structured validation report for a network.

    Errors are fatal and stop the engines from running; warnings are
    informational and are surfaced alongside successful results.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    problem_ids: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def has_errors(self) -> bool:
        """Check if there are any fatal errors."""
        return bool(self.errors)

    def has_warnings(self) -> bool:
        """Check if there are any warnings."""
        return bool(self.warnings)

    def is_valid(self) -> bool:
        """Check if validation passed (no errors, warnings are OK)."""
        return not self.has_errors()

    def get_exit_code(self) -> int:
        """
        Get appropriate CLI exit code.

        Returns:
            0: Valid (no errors)
            1: Errors present
            2: Warnings only
        """
        if self.has_errors():
            return 1
        elif self.has_warnings():
            return 2
        else:
            return 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "problem_ids": list(self.problem_ids),
            "exit_code": self.get_exit_code(),
        }

    def _error(self, member_id: str, message: str) -> None:
        self.errors.append(message)
        if member_id not in self.problem_ids:
            self.problem_ids.append(member_id)

    def __str__(self) -> str:
        """Human-readable string representation."""
        lines = []

        if self.is_valid():
            lines.append("✅ Validation passed")
        else:
            lines.append("❌ Validation failed")

        for err in self.errors:
            lines.append(f"Error: {err}")

        for warning in self.warnings:
            lines.append(f"Warning: {warning}")

        return "\n".join(lines)


def _coerce(network) -> Network | FlowNetwork:
    """Accept a network, a sequence of accounts or nodes, or a document."""
    if isinstance(network, (Network, FlowNetwork)):
        return network
    if isinstance(network, Mapping):
        if "nodes" in network:
            return as_flow_network(network)
        return as_network(network)
    members = list(network)
    if members and all(isinstance(m, FlowNode) for m in members):
        return as_flow_network(members)
    return as_network(members)


def validate_network(
    network: Network | FlowNetwork | Sequence | Mapping,
) -> ValidationReport:
    """
    Check a network for structural correctness.

    Works for both discrete (accounts with balances) and continuous (nodes with
    external inflows) networks. Never raises; every problem is reported.

    Errors:
        - input that is not a network (wrong member types, bad document)
        - empty network, duplicate ids
        - non-finite or negative thresholds, min above max
        - non-finite or negative balance / external inflow
        - self-allocation, unknown target, negative or non-finite weight
        - summed weights above full scale (beyond a 0.01 tolerance)

    Warnings:
        - no outgoing allocations in a multi-participant network
        - no incoming allocations and no starting funds
    """
    report = ValidationReport()

    try:
        network = _coerce(network)
    except (TypeError, ValueError) as exc:
        report.errors.append(f"Network could not be read: {exc}")
        return report

    if isinstance(network, FlowNetwork):
        label, principal_attr, principal_label = "Node", "external_inflow", "external inflow"
        members = list(network.nodes)
    else:
        label, principal_attr, principal_label = "Account", "balance", "balance"
        members = list(network.accounts)

    if not members:
        report.errors.append(f"Network must contain at least one {label.lower()}")
        return report

    counts = Counter(member.id for member in members)
    for member_id, count in counts.items():
        if count > 1:
            report._error(
                member_id, f"{label} {member_id}: duplicate id ({count} occurrences)"
            )

    member_ids = set(counts)
    incoming: set[str] = set()
    for member in members:
        incoming.update(member.allocations.keys())

    for member in members:
        prefix = f"{label} {member.id}"
        min_ok = is_finite_number(member.min_threshold)
        max_ok = is_finite_number(member.max_threshold)
        principal = getattr(member, principal_attr)

        # Thresholds
        if not min_ok:
            report._error(member.id, f"{prefix}: minimum threshold must be a finite number")
        elif member.min_threshold < 0:
            report._error(member.id, f"{prefix}: minimum threshold must be non-negative")
        if not max_ok:
            report._error(member.id, f"{prefix}: maximum threshold must be a finite number")
        elif member.max_threshold < 0:
            report._error(member.id, f"{prefix}: maximum threshold must be non-negative")
        if min_ok and max_ok and member.min_threshold > member.max_threshold:
            report._error(
                member.id,
                f"{prefix}: minimum threshold ({member.min_threshold}) "
                f"exceeds maximum threshold ({member.max_threshold})",
            )

        # Principal funding
        if not is_finite_number(principal):
            report._error(member.id, f"{prefix}: {principal_label} must be a finite number")
        elif principal < 0:
            report._error(member.id, f"{prefix}: {principal_label} must be non-negative")

        # Allocations
        weights_ok = True
        for target_id, weight in member.allocations.items():
            if target_id == member.id:
                report._error(member.id, f"{prefix}: cannot allocate to itself")
            elif target_id not in member_ids:
                report._error(
                    member.id, f"{prefix}: allocation target {target_id} does not exist"
                )
            if not is_finite_number(weight):
                weights_ok = False
                report._error(
                    member.id,
                    f"{prefix}: allocation to {target_id} must be a finite number",
                )
            elif weight < 0:
                report._error(
                    member.id,
                    f"{prefix}: allocation to {target_id} must be non-negative",
                )

        if weights_ok:
            total = total_weight(member.allocations)
            if total > FULL_SCALE + ALLOCATION_TOLERANCE:
                report._error(
                    member.id,
                    f"{prefix}: total allocations ({total}%) exceed {FULL_SCALE:g}%",
                )

        # Warnings
        if not member.allocations and len(members) > 1:
            report.warnings.append(
                f"{prefix}: has no outgoing allocations (overflow will be lost)"
            )
        if member.id not in incoming and principal == 0:
            report.warnings.append(
                f"{prefix}: has no incoming allocations and zero {principal_label} "
                f"(will never receive funds)"
            )

    return report
