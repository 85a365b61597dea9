"""
Command-line interface for FlowFundLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import pandas as pd

from flowfundlab import (
    CatalogError,
    ConfigError,
    FlowNetwork,
    Network,
    NetworkValidationError,
    calculate_steady_state,
    load_network,
    run_distribution,
    run_targeted_distribution,
    validate_network,
)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy scalars/arrays, enums and pandas objects."""

    def default(self, obj):
        import numpy as np

        if isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, np.generic):
            return obj.item()
        elif isinstance(obj, pd.DataFrame):
            return obj.to_dict("records")
        elif isinstance(obj, pd.Series):
            return obj.to_dict()
        elif hasattr(obj, "value"):
            return obj.value
        return super().default(obj)


def _save_json(path: str, data: dict) -> None:
    """Save data as JSON to file path."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, cls=NumpyEncoder)


def _solver_overrides(args) -> dict:
    return {
        "max_iterations": args.max_iterations,
        "epsilon": args.epsilon,
        "verbose": True if args.verbose else None,
    }


EXAMPLES = {
    "discrete": {
        "name": "mutual-aid-circle",
        "defaults": {"min_threshold": 100.0, "max_threshold": 300.0},
        "accounts": [
            {"id": "A", "name": "Alice", "balance": 0.0, "allocations": {"B": 100.0}},
            {"id": "B", "name": "Bob", "balance": 0.0, "allocations": {"C": 100.0}},
            {"id": "C", "name": "Carol", "balance": 0.0, "allocations": {"A": 100.0}},
            {
                "id": "D",
                "name": "David",
                "balance": 0.0,
                "max_threshold": 400.0,
                "allocations": {"A": 50.0, "B": 50.0},
            },
        ],
    },
    "continuous": {
        "name": "mutual-aid-flows",
        "defaults": {"min_threshold": 100.0, "max_threshold": 300.0},
        "nodes": [
            {"id": "A", "name": "Alice", "external_inflow": 200.0, "allocations": {"B": 100.0}},
            {"id": "B", "name": "Bob", "external_inflow": 200.0, "allocations": {"C": 100.0}},
            {"id": "C", "name": "Carol", "external_inflow": 200.0, "allocations": {"A": 100.0}},
        ],
    },
}


def cmd_example(args) -> int:
    """Print a minimal working network JSON."""
    json.dump(EXAMPLES[args.mode], sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


def cmd_validate(args) -> int:
    """Validate a network document."""
    try:
        network = load_network(args.input)
    except (CatalogError, FileNotFoundError) as e:
        if args.format == "json":
            error_report = {
                "valid": False,
                "errors": [str(e)],
                "warnings": [],
                "exit_code": 1,
            }
            json.dump(error_report, sys.stdout, indent=2)
            sys.stdout.write("\n")
        else:
            print(f"❌ Validation failed: {e}")
        return 1

    report = validate_network(network)
    if args.format == "json":
        json.dump(report.to_dict(), sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(str(report))
    return report.get_exit_code()


def cmd_distribute(args) -> int:
    """Run the discrete distribution on an accounts document."""
    try:
        network = load_network(args.input)
        if not isinstance(network, Network):
            print("Error: 'distribute' requires a document with 'accounts'", file=sys.stderr)
            return 1

        if args.targeted:
            result = run_targeted_distribution(network, **_solver_overrides(args))
        else:
            result = run_distribution(network, args.funding, **_solver_overrides(args))
    except (CatalogError, ConfigError, NetworkValidationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    summary = result.summary()
    status = "converged" if result.converged else "did NOT converge"
    print(
        f"Distribution {status} after {summary['iteration_count']} iterations "
        f"(funding {summary['total_funding']:.2f})"
    )
    frame = pd.DataFrame(
        {
            "initial": pd.Series(result.initial_balances),
            "final": pd.Series(result.final_balances),
        }
    )
    frame["delta"] = frame["final"] - frame["initial"]
    print(frame.round(2).to_string())
    for warning in result.warnings:
        print(f"Warning: {warning}")

    if args.output:
        _save_json(args.output, result.to_dict())
        print(f"Wrote results to {args.output}")
    return 0


def cmd_equilibrium(args) -> int:
    """Run the continuous steady-state calculation on a nodes document."""
    try:
        network = load_network(args.input)
        if not isinstance(network, FlowNetwork):
            print("Error: 'equilibrium' requires a document with 'nodes'", file=sys.stderr)
            return 1
        result = calculate_steady_state(network, **_solver_overrides(args))
    except (CatalogError, ConfigError, NetworkValidationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    status = "converged" if result.converged else "did NOT converge"
    print(f"Equilibrium {status} after {result.iterations} iterations")
    print(result.nodes_frame().round(2).to_string())
    if result.overflow_sink is not None:
        print(f"Overflow: {result.overflow_sink.total_inflow:.2f}/mo (unallocated)")
    for warning in result.warnings:
        print(f"Warning: {warning}")

    if args.output:
        _save_json(args.output, result.to_dict())
        print(f"Wrote results to {args.output}")
    return 0


def _add_solver_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i", "--input", required=True, help="Input network YAML/JSON file"
    )
    parser.add_argument("-o", "--output", help="Output results JSON file")
    parser.add_argument(
        "--max-iterations", type=int, default=None, help="Round cap override"
    )
    parser.add_argument(
        "--epsilon", type=float, default=None, help="Convergence threshold override"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log the round-by-round trace"
    )


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="flowfund", description="FlowFundLab - Threshold-based flow funding solvers"
    )

    # Version argument
    parser.add_argument("--version", action="version", version="FlowFundLab 0.1.0")

    subparsers = parser.add_subparsers(
        dest="cmd", required=True, help="Available commands"
    )

    # Example command
    example_parser = subparsers.add_parser(
        "example", help="Print a minimal working network JSON"
    )
    example_parser.add_argument(
        "--mode",
        choices=sorted(EXAMPLES),
        default="discrete",
        help="Network flavour (default: discrete)",
    )
    example_parser.set_defaults(func=cmd_example)

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Validate a network document")
    validate_parser.add_argument(
        "-i", "--input", required=True, help="Input network YAML/JSON file"
    )
    validate_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    # Distribute command
    distribute_parser = subparsers.add_parser(
        "distribute", help="Distribute a lump sum across an accounts network"
    )
    _add_solver_options(distribute_parser)
    distribute_parser.add_argument(
        "--funding", type=float, default=0.0, help="Lump sum to inject (default: 0)"
    )
    distribute_parser.add_argument(
        "--targeted",
        action="store_true",
        help="Skip the initial distribution and redistribute current overflow only",
    )
    distribute_parser.set_defaults(func=cmd_distribute)

    # Equilibrium command
    equilibrium_parser = subparsers.add_parser(
        "equilibrium", help="Solve the steady state of a flow network"
    )
    _add_solver_options(equilibrium_parser)
    equilibrium_parser.set_defaults(func=cmd_equilibrium)

    # Parse arguments and execute
    args = parser.parse_args(argv)
    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
