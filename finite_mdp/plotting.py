import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from typing import Dict, Mapping, Optional, Sequence

from .solver import SolverResult


def plot_convergence(
    history: Sequence[float],
    title: str = 'Convergence',
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """
    Plots the largest value change per iteration on a log scale.
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    iterations = range(1, len(history) + 1)
    ax.plot(iterations, history, marker='o', markersize=3, color='blue', linewidth=1.5)
    ax.set_yscale('log')
    ax.set_xlabel('Iteration')
    ax.set_ylabel('Max |ΔV|')
    ax.set_title(title)
    ax.grid(True, alpha=0.3, which='both')
    return ax


def value_comparison_frame(results: Mapping[str, SolverResult]) -> pd.DataFrame:
    """
    Collects the value functions of several solver results into one frame.
    Index=state, Columns=method name.
    """
    return pd.DataFrame({
        name: pd.Series({str(state): v for state, v in result.value_function.items()})
        for name, result in results.items()
    })


def plot_value_comparison(
    results: Dict[str, SolverResult],
    ax: Optional[plt.Axes] = None,
) -> plt.Axes:
    """
    Plots a grouped bar chart of the value function found by each method.
    """
    frame = value_comparison_frame(results)

    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 6))

    frame.plot(
        kind='bar',
        ax=ax,
        width=0.8,
        color=sns.color_palette('viridis', len(frame.columns)),
        edgecolor='white',
        linewidth=1
    )
    ax.set_xlabel('State', fontsize=12)
    ax.set_ylabel('V(s)', fontsize=12)
    ax.set_title('Value Function by Solution Method', fontsize=14)
    ax.legend(title='Method', bbox_to_anchor=(1.02, 1), loc='upper left')
    ax.tick_params(axis='x', rotation=45)
    ax.grid(axis='y', alpha=0.3)
    return ax
