"""
Core module for FlowFundLab.

This module contains the network model, the validator and the two solvers
(discrete distribution and continuous equilibrium).
"""

from .accounts import MINIMUM_EPSILON, Account, AccountStatus, classify_status
from .catalog_loader import CatalogError, load_network
from .config import DistributionConfig, EquilibriumConfig
from .distribution import (
    calculate_overflow,
    initial_distribution,
    redistribute_overflow,
    run_distribution,
    run_targeted_distribution,
)
from .equilibrium import accumulate_balances, calculate_steady_state
from .errors import ConfigError
from .exceptions import NetworkValidationError
from .network import FlowNetwork, Network, as_flow_network, as_network
from .nodes import (
    CAPACITY_MULTIPLIER,
    FlowNode,
    FlowZone,
    calculate_outflow,
    get_flow_zone,
)
from .results import (
    DistributionResult,
    EquilibriumResult,
    EquilibriumRound,
    FlowEdge,
    IterationRecord,
    NodeState,
    OverflowSink,
)
from .utils import (
    FULL_SCALE,
    SECONDS_PER_MONTH,
    normalize_weights,
    per_month_to_per_second,
    per_second_to_per_month,
)
from .validation import ValidationReport, validate_network

__all__ = [
    # Errors
    "ConfigError",
    "NetworkValidationError",
    "CatalogError",
    # Model
    "Account",
    "AccountStatus",
    "classify_status",
    "MINIMUM_EPSILON",
    "FlowNode",
    "FlowZone",
    "CAPACITY_MULTIPLIER",
    "calculate_outflow",
    "get_flow_zone",
    "Network",
    "FlowNetwork",
    "as_network",
    "as_flow_network",
    # Config
    "DistributionConfig",
    "EquilibriumConfig",
    # Validation
    "ValidationReport",
    "validate_network",
    # Discrete engine
    "initial_distribution",
    "calculate_overflow",
    "redistribute_overflow",
    "run_distribution",
    "run_targeted_distribution",
    # Continuous engine
    "calculate_steady_state",
    "accumulate_balances",
    # Results
    "FlowEdge",
    "IterationRecord",
    "DistributionResult",
    "EquilibriumRound",
    "NodeState",
    "OverflowSink",
    "EquilibriumResult",
    # Loading
    "load_network",
    # Utils
    "FULL_SCALE",
    "SECONDS_PER_MONTH",
    "normalize_weights",
    "per_month_to_per_second",
    "per_second_to_per_month",
]
