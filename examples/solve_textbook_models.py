"""
Textbook Models Example

Solves the recycling robot and the AIMA grid world with value iteration,
policy iteration and exact policy iteration, and compares the results,
including visualizations.
"""

import logging
import sys
sys.path.insert(0, '.')

import matplotlib
# Use Agg backend for file output (works without display)
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from finite_mdp import Solver, solve
from finite_mdp.plotting import plot_convergence, plot_value_comparison
from finite_mdp.textbook import create_recycling_robot_model, create_aima_grid_model


def run_recycling_robot():
    """
    Solve the recycling robot with all three methods.
    """
    print("=" * 60)
    print("RECYCLING ROBOT (Sutton and Barto, Example 3.7)")
    print("=" * 60)

    model = create_recycling_robot_model()
    discount = 0.95

    results = {
        "Value Iteration": solve(model, discount, method="value_iteration", tolerance=1e-6),
        "Policy Iteration": solve(
            model, discount, method="policy_iteration", tolerance=1e-6, max_value_iters=10
        ),
        "Exact Policy Iteration": solve(model, discount, method="policy_iteration_exact"),
    }

    for name, result in results.items():
        print(f"\n{name}:")
        print(f"  Converged: {result.converged} after {result.iterations} iterations")
        for state, action in result.policy.items():
            print(f"  {state:>5}: {action:<9} V = {result.value_function[state]:.4f}")

    solver = Solver(model, discount)
    solver.policy_iteration_exact()
    print("\nState-action values:")
    for (state, action), q in solver.state_action_value().items():
        print(f"  Q({state}, {action}) = {q:.4f}")

    return results


def run_grid_world():
    """
    Solve the 4x3 grid world and print the policy and values as a grid.
    """
    print("\n" + "=" * 60)
    print("GRID WORLD (Russell and Norvig, Chapter 17)")
    print("=" * 60)

    model = create_aima_grid_model(step_reward=-0.04)
    solver = Solver(model, 1.0)
    history = []
    converged = solver.value_iteration(
        1e-5, 100, callback=lambda num_iters, delta: history.append(delta)
    )

    print(f"\nConverged: {converged} after {len(history)} sweeps")
    print("\nPolicy:")
    for row in model.pretty_policy(solver.policy()):
        print(f"  {row}")
    print("\nValues:")
    for row in model.pretty_value(solver.value()):
        print(f"  {row}")

    return history


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    robot_results = run_recycling_robot()
    grid_history = run_grid_world()

    fig, axes = plt.subplots(1, 2, figsize=(16, 6))
    plot_value_comparison(robot_results, ax=axes[0])
    plot_convergence(grid_history, title='Grid World Value Iteration', ax=axes[1])
    plt.tight_layout()
    plt.savefig('textbook_models.png', dpi=100)
    print("\nSaved plots to textbook_models.png")
