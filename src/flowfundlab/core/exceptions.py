"""
Custom exceptions for FlowFundLab.

This module provides the exception raised when a network fails validation
at an engine entry point.
"""

from __future__ import annotations


class NetworkValidationError(ValueError):
    """
    Raised when a network fails validation before an engine runs.

    The engines validate their input first and raise this exception once,
    before any state is computed, so no partial result ever escapes.

    Attributes:
        network_name: Name of the network that failed validation
        report: The ValidationReport produced by the validator
        errors: The list of fatal validation messages
        problem_ids: Account/node ids that caused errors
    """

    def __init__(
        self,
        network_name: str,
        report=None,
        problem_ids: list[str] | None = None,
    ):
        self.network_name = network_name
        self.report = report
        self.errors = list(report.errors) if report is not None else []
        self.problem_ids = problem_ids or []
        super().__init__(self._fmt())

    def _fmt(self) -> str:
        """Format every error into a single aggregated message."""
        suffix = ""
        if self.problem_ids:
            preview = ", ".join(self.problem_ids[:10])
            more = (
                f" (+{len(self.problem_ids)-10} more)"
                if len(self.problem_ids) > 10
                else ""
            )
            suffix = f" | problem_ids: [{preview}]{more}"
        body = "\n".join(f"  - {err}" for err in self.errors)
        return f"[Network {self.network_name}] Invalid network{suffix}:\n{body}"
