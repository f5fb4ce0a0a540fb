"""
Tests for the plotting helpers.

Renders to the Agg backend so no display is needed.
"""

import pytest

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

import sys
sys.path.insert(0, '.')

from finite_mdp.solver import solve
from finite_mdp.plotting import plot_convergence, plot_value_comparison, value_comparison_frame
from finite_mdp.textbook import create_recycling_robot_model


@pytest.fixture
def results():
    model = create_recycling_robot_model()
    return {
        method: solve(model, 0.95, method=method, tolerance=1e-6)
        for method in ("value_iteration", "policy_iteration_exact")
    }


class TestPlotting:
    """Tests for convergence and value plots"""

    def test_value_comparison_frame(self, results):
        """Test that the frame has one row per state and one column per method"""
        frame = value_comparison_frame(results)

        assert frame.shape == (2, 2)
        assert list(frame.columns) == ["value_iteration", "policy_iteration_exact"]
        assert frame.loc["high", "value_iteration"] == pytest.approx(
            frame.loc["high", "policy_iteration_exact"], abs=1e-4
        )

    def test_plot_convergence(self, results):
        """Test the convergence plot"""
        fig, ax = plt.subplots()

        returned = plot_convergence(results["value_iteration"].history, title='VI', ax=ax)

        assert returned is ax
        assert ax.get_yscale() == 'log'
        assert ax.get_title() == 'VI'
        assert len(ax.lines) == 1
        plt.close(fig)

    def test_plot_value_comparison(self, results):
        """Test the grouped value bar chart"""
        ax = plot_value_comparison(results)

        # one bar per state and method
        assert len(ax.patches) == 4
        plt.close(ax.figure)
