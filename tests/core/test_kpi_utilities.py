"""
Tests for KPI utility functions.
"""

import pandas as pd
import pytest

from flowfundlab import (
    Account,
    FlowNetwork,
    FlowNode,
    Network,
    calculate_steady_state,
    run_distribution,
)
from flowfundlab.kpi import (
    convergence_profile,
    distribution_summary,
    funds_lost,
    network_totals,
    retention_rates,
    status_counts,
    zone_counts,
)


class TestKPIUtilities:
    """Test KPI utility functions."""

    @pytest.fixture
    def sample_network(self):
        """Accounts covering every status."""
        return Network(
            name="sample",
            accounts=[
                Account("deficit", "D", 50, 100, 300, {"minimum": 100}),
                Account("minimum", "M", 100, 100, 300, {"healthy": 100}),
                Account("healthy", "H", 200, 100, 300, {"overflow": 100}),
                Account("overflow", "O", 350, 100, 300, {"deficit": 100}),
            ],
        )

    def test_network_totals(self, sample_network):
        totals = network_totals(sample_network)
        assert isinstance(totals, pd.Series)
        assert totals.name == "sample"
        assert totals["total_funds"] == 700
        assert totals["total_shortfall"] == 50
        assert totals["total_capacity"] == 250 + 200 + 100
        assert totals["total_overflow"] == 50

    def test_status_counts(self, sample_network):
        counts = status_counts(sample_network)
        assert counts.to_dict() == {
            "deficit": 1,
            "minimum": 1,
            "healthy": 1,
            "overflow": 1,
        }

    def test_distribution_summary(self, sample_network):
        result = run_distribution(sample_network, 100)
        summary = distribution_summary(result.initial_network, result.final_network)

        assert summary["total_distributed"] == pytest.approx(100.0)
        assert summary["accounts_changed"] == len(summary["changes"])
        assert list(summary["changes"].columns) == [
            "account_id",
            "name",
            "before",
            "after",
            "delta",
        ]

    def test_distribution_summary_no_change(self, sample_network):
        summary = distribution_summary(sample_network, sample_network)
        assert summary["total_distributed"] == 0.0
        assert summary["accounts_changed"] == 0
        assert summary["changes"].empty

    def test_funds_lost(self):
        network = Network(
            accounts=[
                Account("a", "A", 0, 0, 100, {"b": 100}),
                Account("b", "B", 0, 0, 100),
            ]
        )
        result = run_distribution(network, 500)
        # Both fill to 100, the rest piles into b and is dropped there
        assert result.final_balances == {"a": 100.0, "b": 100.0}
        assert funds_lost(result) == pytest.approx(300.0)

    def test_no_funds_lost_in_cycle(self, sample_network):
        result = run_distribution(sample_network, 100)
        assert funds_lost(result) == pytest.approx(0.0)

    def test_convergence_profile(self, sample_network):
        result = run_distribution(sample_network, 0)
        profile = convergence_profile(result)
        assert profile.name == "total_overflow"
        assert profile.index.name == "iteration"
        assert profile.iloc[0] == pytest.approx(50.0)
        assert profile.iloc[-1] < 0.01

    def test_flow_kpis(self):
        network = FlowNetwork(
            nodes=[
                FlowNode("a", "A", 600, 0, 100, {"b": 100}),
                FlowNode("b", "B", 0, 0, 1000),
                FlowNode("c", "C", 0, 10, 100, {"a": 100}),
            ]
        )
        result = calculate_steady_state(network)

        assert zone_counts(result).to_dict() == {
            "deficit": 1,
            "building": 1,
            "capacity": 1,
        }
        rates = retention_rates(result)
        assert rates["a"] == pytest.approx(100.0 / 600.0)
        assert rates["b"] == pytest.approx(2.0 / 3.0)
        assert rates["c"] == 1.0

        profile = convergence_profile(result)
        assert profile.name == "max_change"
        assert len(profile) == result.iterations
