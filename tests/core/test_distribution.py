"""
Tests for the discrete distribution engine.
"""

import logging

import pytest

from flowfundlab import (
    Account,
    ConfigError,
    DistributionConfig,
    FlowEdge,
    Network,
    calculate_overflow,
    initial_distribution,
    redistribute_overflow,
    run_distribution,
    run_targeted_distribution,
)


@pytest.fixture
def linear_chain():
    """A -> B -> C -> D, D keeps its overflow nowhere."""
    return Network(
        name="linear-chain",
        accounts=[
            Account("A", "Alice", 0, 100, 300, {"B": 100}),
            Account("B", "Bob", 0, 150, 350, {"C": 100}),
            Account("C", "Carol", 0, 100, 300, {"D": 100}),
            Account("D", "David", 0, 200, 400),
        ],
    )


@pytest.fixture
def mutual_aid():
    return Network(
        name="mutual-aid",
        accounts=[
            Account("A", "Alice", 0, 100, 300, {"B": 100}),
            Account("B", "Bob", 0, 100, 300, {"C": 100}),
            Account("C", "Carol", 0, 100, 300, {"A": 100}),
        ],
    )


class TestInitialDistribution:
    """Phase A: minimums first, then capacity."""

    def test_insufficient_funding_split_by_shortfall(self):
        network = Network(
            accounts=[
                Account("a", "A", 0, 100, 300),
                Account("b", "B", 0, 200, 400),
            ]
        )
        result = run_distribution(network, 150)
        assert result.final_balances == {"a": 50.0, "b": 100.0}
        assert result.converged
        assert result.iteration_count == 1

    def test_sufficient_funding_split_by_capacity(self):
        network = Network(
            accounts=[
                Account("a", "A", 0, 100, 200),
                Account("b", "B", 0, 100, 300),
            ]
        )
        result = run_distribution(network, 500)
        assert result.final_balances == {"a": 200.0, "b": 300.0}
        assert result.converged

    def test_scarcity_leaves_funded_accounts_untouched(self):
        network = Network(
            accounts=[
                Account("a", "A", 0, 100, 300),
                Account("b", "B", 250, 100, 300),
            ]
        )
        after = initial_distribution(network, 40)
        assert after.balances() == {"a": 40.0, "b": 250.0}

    def test_exact_shortfall_fills_minimums_only(self):
        network = Network(
            accounts=[
                Account("a", "A", 20, 100, 300),
                Account("b", "B", 0, 50, 300),
            ]
        )
        after = initial_distribution(network, 130)
        assert after.balances() == {"a": 100.0, "b": 50.0}

    def test_no_capacity_splits_evenly(self):
        network = Network(
            accounts=[
                Account("a", "A", 100, 0, 100),
                Account("b", "B", 50, 0, 50),
            ]
        )
        after = initial_distribution(network, 100)
        assert after.balances() == {"a": 150.0, "b": 100.0}

        result = run_distribution(network, 100)
        assert result.iterations[0].total_overflow == pytest.approx(100.0)
        assert result.final_balances == {"a": 100.0, "b": 50.0}
        assert result.converged

    def test_input_is_not_mutated(self, linear_chain):
        before = linear_chain.to_dict()
        initial_distribution(linear_chain, 1000)
        run_distribution(linear_chain, 2000)
        assert linear_chain.to_dict() == before

    def test_result_snapshot_cannot_be_edited(self, linear_chain):
        result = run_distribution(linear_chain, 2000)
        with pytest.raises(TypeError):
            linear_chain.get("A").allocations["B"] = 0
        assert result.initial_network.get("A").allocations == {"B": 100}
        assert result.final_network.get("A").allocations == {"B": 100}


class TestOverflowRounds:
    """Phase B: iterative overflow redistribution."""

    def test_linear_chain_without_overflow(self, linear_chain):
        result = run_distribution(linear_chain, 1000)
        assert result.final_balances == {
            "A": 212.5,
            "B": 262.5,
            "C": 212.5,
            "D": 312.5,
        }
        assert result.iteration_count == 1
        assert result.iterations[0].converged

    def test_linear_chain_cascade(self, linear_chain):
        result = run_distribution(linear_chain, 2000)

        assert result.converged
        assert result.total_overflow_history == pytest.approx(
            [650.0, 487.5, 325.0, 162.5, 0.0]
        )
        assert result.final_balances == {"A": 300.0, "B": 350.0, "C": 300.0, "D": 400.0}

        first = result.iterations[0]
        assert first.overflows == {"A": 162.5, "B": 162.5, "C": 162.5, "D": 162.5}
        assert first.flows == (
            FlowEdge("A", "B", 162.5, 100),
            FlowEdge("B", "C", 162.5, 100),
            FlowEdge("C", "D", 162.5, 100),
        )
        # Balances recorded after redistribution
        assert first.balances == {"A": 300.0, "B": 512.5, "C": 462.5, "D": 562.5}
        assert first.flow_map()[("B", "C")] == 162.5

        last = result.iterations[-1]
        assert last.converged
        assert last.flows == ()

    def test_single_account_overflow_is_lost(self):
        network = Network(accounts=[Account("a", "A", 150, 0, 100)])
        result = run_distribution(network, 0)

        assert result.iterations[0].overflows == {"a": 50.0}
        assert result.iterations[0].balances == {"a": 100.0}
        assert not result.iterations[0].converged
        assert result.initial_total == 150
        assert result.final_total == 100
        assert result.converged
        assert result.iteration_count == 2

    def test_zero_weights_lose_overflow(self):
        network = Network(
            accounts=[
                Account("a", "A", 150, 0, 100, {"b": 0}),
                Account("b", "B", 0, 0, 100, {"a": 100}),
            ]
        )
        result = run_distribution(network, 0)
        assert result.final_balances == {"a": 100.0, "b": 0.0}
        assert result.iterations[0].flows == ()

    def test_partial_weights_are_normalized(self):
        network = Network(
            accounts=[
                Account("a", "A", 200, 0, 100, {"b": 30, "c": 10}),
                Account("b", "B", 0, 0, 100, {"a": 100}),
                Account("c", "C", 0, 0, 100, {"a": 100}),
            ]
        )
        result = run_distribution(network, 0)
        assert result.final_balances == {"a": 100.0, "b": 75.0, "c": 25.0}

    def test_non_convergence_is_reported(self, mutual_aid):
        result = run_distribution(mutual_aid, 1200, max_iterations=10)

        assert not result.converged
        assert result.iteration_count == 10
        assert not any(rec.converged for rec in result.iterations)
        # Everything circulates, nothing is lost
        assert result.final_total == pytest.approx(1200.0)

    def test_non_convergence_logs_warning(self, mutual_aid, caplog):
        with caplog.at_level(logging.WARNING, logger="flowfundlab"):
            run_distribution(mutual_aid, 1200, max_iterations=3)
        assert "did not converge within 3 iterations" in caplog.text

    def test_mutual_aid_fits(self, mutual_aid):
        result = run_distribution(mutual_aid, 600)
        assert result.final_balances == {"A": 200.0, "B": 200.0, "C": 200.0}


class TestBuildingBlocks:
    """Public per-phase functions are pure."""

    def test_calculate_overflow(self):
        network = Network(
            accounts=[
                Account("a", "A", 150, 0, 100, {"b": 100}),
                Account("b", "B", 20, 0, 100),
            ]
        )
        clamped, overflows = calculate_overflow(network)
        assert overflows == {"a": 50.0}
        assert clamped.balances() == {"a": 100.0, "b": 20.0}
        assert network.get("a").balance == 150

    def test_redistribute_overflow(self):
        network = Network(
            accounts=[
                Account("a", "A", 100, 0, 100, {"b": 50, "c": 50}),
                Account("b", "B", 20, 0, 100),
                Account("c", "C", 0, 0, 100),
            ]
        )
        after, flows = redistribute_overflow(network, {"a": 50.0})
        assert after.balances() == {"a": 100.0, "b": 45.0, "c": 25.0}
        assert [(f.source, f.target, f.amount) for f in flows] == [
            ("a", "b", 25.0),
            ("a", "c", 25.0),
        ]

    def test_ids_with_delimiters(self):
        network = Network(
            accounts=[
                Account("x->y", "Arrow", 150, 0, 100, {"y": 100}),
                Account("y", "Y", 0, 0, 100, {"x->y": 100}),
            ]
        )
        result = run_distribution(network, 0)
        edge = result.iterations[0].flows[0]
        assert (edge.source, edge.target) == ("x->y", "y")


class TestTargetedDistribution:
    """Overflow-only runs from current balances."""

    def test_targeted_skips_initial_distribution(self):
        network = Network(
            accounts=[
                Account("a", "A", 500, 100, 300, {"b": 100}),
                Account("b", "B", 0, 100, 300, {"a": 100}),
            ]
        )
        result = run_targeted_distribution(network)
        assert result.total_funding == 0
        assert result.final_balances == {"a": 300.0, "b": 200.0}
        assert result.converged

    def test_rerun_after_convergence_is_stable(self, linear_chain):
        result = run_distribution(linear_chain, 2000)
        again = run_targeted_distribution(result.final_network)
        for account_id, balance in result.final_balances.items():
            assert again.final_balances[account_id] == pytest.approx(balance, abs=0.01)
        assert again.iteration_count == 1


class TestConfiguration:
    """Engine options and input checks."""

    def test_negative_funding(self, linear_chain):
        with pytest.raises(ConfigError, match="funding"):
            run_distribution(linear_chain, -1)

    def test_nan_funding(self, linear_chain):
        with pytest.raises(ConfigError):
            run_distribution(linear_chain, float("nan"))

    def test_invalid_config(self, linear_chain):
        with pytest.raises(ConfigError):
            run_distribution(linear_chain, 10, max_iterations=0)
        with pytest.raises(ConfigError):
            run_distribution(linear_chain, 10, epsilon=-0.5)

    def test_config_mapping_with_camel_case(self, linear_chain):
        result = run_distribution(linear_chain, 2000, {"maxIterations": 2})
        assert result.iteration_count == 2
        assert not result.converged

    def test_config_object(self, linear_chain):
        cfg = DistributionConfig(max_iterations=3, epsilon=0.5)
        result = run_distribution(linear_chain, 2000, cfg)
        assert result.iteration_count == 3

    def test_unknown_config_key(self):
        with pytest.raises(ConfigError, match="Unknown configuration option"):
            DistributionConfig.from_dict({"iterations": 5})

    def test_accepts_account_list_and_mapping(self):
        accounts = [Account("a", "A", 0, 100, 300), Account("b", "B", 0, 200, 400)]
        from_list = run_distribution(accounts, 150)
        from_doc = run_distribution(
            {"accounts": [a.to_dict() for a in accounts]}, 150
        )
        assert from_list.final_balances == from_doc.final_balances

    def test_verbose_traces_at_info(self, linear_chain, caplog):
        with caplog.at_level(logging.INFO, logger="flowfundlab"):
            quiet = run_distribution(linear_chain, 2000)
        assert "Iteration" not in caplog.text
        caplog.clear()
        with caplog.at_level(logging.INFO, logger="flowfundlab"):
            loud = run_distribution(linear_chain, 2000, verbose=True)
        assert "--- Iteration 0 ---" in caplog.text
        assert quiet.to_dict() == loud.to_dict()

    def test_deterministic(self, linear_chain):
        first = run_distribution(linear_chain, 2000)
        second = run_distribution(linear_chain, 2000)
        assert first.to_dict() == second.to_dict()
