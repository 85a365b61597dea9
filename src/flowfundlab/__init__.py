"""
FlowFundLab - Threshold-Based Flow Funding

FlowFundLab models a resource-allocation mechanism in which participants hold
balances (or flow rates) bounded by a minimum viable threshold and a maximum
threshold. Anything beyond the maximum is redistributed to other participants
according to their declared percentage allocations.

Key Features:
- **Discrete mode**: inject a lump sum, fill minimums, then redistribute
  overflow in rounds until no account exceeds its maximum
- **Continuous mode**: solve the steady state of monthly flow rates under a
  progressive (zone-based) outflow function
- **Validation first**: structural errors stop the engines before any work,
  warnings are returned with the result
- **Traceable**: every round is recorded so results can be replayed and
  inspected as pandas DataFrames
- **Cycles welcome**: mutual-aid loops are a supported topology

Quick Start:
    ```python
    from flowfundlab import Account, Network, run_distribution

    network = Network(
        name="demo",
        accounts=[
            Account("a", "Alice", 0, 100, 300, {"b": 100}),
            Account("b", "Bob", 0, 100, 200, {"a": 100}),
        ],
    )
    result = run_distribution(network, funding=400)
    print(result.final_balances, result.converged)
    ```

Continuous mode:
    ```python
    from flowfundlab import FlowNode, FlowNetwork, calculate_steady_state

    nodes = [
        FlowNode("a", "Alice", 200, 100, 300, {"b": 100}),
        FlowNode("b", "Bob", 200, 100, 300, {"a": 100}),
    ]
    result = calculate_steady_state(FlowNetwork(name="loop", nodes=nodes))
    print(result.nodes_frame())
    ```

License:
    This is a proof-of-concept for educational and research purposes.
"""

# Version information
__version__ = "0.1.0"
__author__ = "FlowFundLab Team"
__description__ = "Threshold-Based Flow Funding solvers"

from .core import (
    CAPACITY_MULTIPLIER,
    FULL_SCALE,
    MINIMUM_EPSILON,
    SECONDS_PER_MONTH,
    Account,
    AccountStatus,
    CatalogError,
    ConfigError,
    DistributionConfig,
    DistributionResult,
    EquilibriumConfig,
    EquilibriumResult,
    EquilibriumRound,
    FlowEdge,
    FlowNetwork,
    FlowNode,
    FlowZone,
    IterationRecord,
    Network,
    NetworkValidationError,
    NodeState,
    OverflowSink,
    ValidationReport,
    accumulate_balances,
    as_flow_network,
    as_network,
    calculate_outflow,
    calculate_overflow,
    calculate_steady_state,
    classify_status,
    get_flow_zone,
    initial_distribution,
    load_network,
    normalize_weights,
    per_month_to_per_second,
    per_second_to_per_month,
    redistribute_overflow,
    run_distribution,
    run_targeted_distribution,
    validate_network,
)
from . import kpi

__all__ = [
    "__version__",
    "kpi",
    "Account",
    "AccountStatus",
    "FlowNode",
    "FlowZone",
    "Network",
    "FlowNetwork",
    "as_network",
    "as_flow_network",
    "classify_status",
    "calculate_outflow",
    "get_flow_zone",
    "CAPACITY_MULTIPLIER",
    "MINIMUM_EPSILON",
    "FULL_SCALE",
    "SECONDS_PER_MONTH",
    "DistributionConfig",
    "EquilibriumConfig",
    "ValidationReport",
    "validate_network",
    "initial_distribution",
    "calculate_overflow",
    "redistribute_overflow",
    "run_distribution",
    "run_targeted_distribution",
    "calculate_steady_state",
    "accumulate_balances",
    "FlowEdge",
    "IterationRecord",
    "DistributionResult",
    "EquilibriumRound",
    "NodeState",
    "OverflowSink",
    "EquilibriumResult",
    "load_network",
    "normalize_weights",
    "per_month_to_per_second",
    "per_second_to_per_month",
    "ConfigError",
    "CatalogError",
    "NetworkValidationError",
]
