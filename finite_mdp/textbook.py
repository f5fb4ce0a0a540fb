"""
Textbook MDPs with known solutions.

- Recycling robot: Example 3.7 from Sutton and Barto (1998)
- Grid world: Russell and Norvig (2003), Artificial Intelligence: A Modern
  Approach, Chapter 17
"""

from typing import Any, Hashable, List, Mapping, Optional, Sequence, Tuple

from .model import Model
from .table_model import TableModel

STOP = "stop"


def create_recycling_robot_model(
    alpha: float = 0.1,
    beta: float = 0.1,
    r_search: float = 2,
    r_wait: float = 1,
    r_rescue: float = -3
) -> TableModel:
    """
    Create the recycling robot model.

    The robot's battery is either "high" or "low". Searching drains a high
    battery with probability 1 - alpha and flattens a low one with
    probability 1 - beta, in which case it has to be rescued. Waiting keeps
    the battery level, and recharging (only from "low") restores it.

    Zero-probability rows are included, so the table is dense.

    Args:
        alpha: Probability that searching keeps a high battery high
        beta: Probability that searching on a low battery does not run it flat
        r_search: Expected reward while searching
        r_wait: Expected reward while waiting
        r_rescue: Reward when the robot has to be rescued

    Returns:
        TableModel with states "high"/"low" and actions "search", "wait"
        and "recharge"
    """
    return TableModel([
        ("high", "search",   "high", alpha,     r_search),
        ("high", "search",   "low",  1 - alpha, r_search),
        ("low",  "search",   "high", 1 - beta,  r_rescue),
        ("low",  "search",   "low",  beta,      r_search),
        ("high", "wait",     "high", 1,         r_wait),
        ("high", "wait",     "low",  0,         r_wait),
        ("low",  "wait",     "high", 0,         r_wait),
        ("low",  "wait",     "low",  1,         r_wait),
        ("low",  "recharge", "high", 1,         0),
        ("low",  "recharge", "low",  0,         0),
    ])


class GridWorldModel(Model):
    """
    Grid world where the agent moves north, east, south or west.

    A move succeeds with probability 0.8 and slips to either side with
    probability 0.1 each. Moving off the grid or into an obstacle leaves the
    agent where it is. Terminal cells have a single "stop" action that leads
    to the absorbing "stop" state.

    Attributes:
        grid: Reward of each cell, or None for an obstacle
        terminals: Coordinates of the terminal cells
    """

    # row and column offsets for each move
    MOVES = {
        "^": (-1, 0),
        ">": (0, 1),
        "v": (1, 0),
        "<": (0, -1),
    }

    # intended move first, then the two sideways slips
    SLIPS = {
        "^": (("^", 0.8), ("<", 0.1), (">", 0.1)),
        ">": ((">", 0.8), ("^", 0.1), ("v", 0.1)),
        "v": (("v", 0.8), ("<", 0.1), (">", 0.1)),
        "<": (("<", 0.8), ("^", 0.1), ("v", 0.1)),
    }

    def __init__(
        self,
        grid: Sequence[Sequence[Optional[float]]],
        terminals: Sequence[Tuple[int, int]]
    ):
        self.grid = [list(row) for row in grid]
        self.terminals = [tuple(cell) for cell in terminals]
        self._cells = [
            (i, j)
            for i in range(len(self.grid))
            for j in range(len(self.grid[i]))
            if self.grid[i][j] is not None
        ]
        self._cell_set = set(self._cells)

    def states(self) -> List[Hashable]:
        return self._cells + [STOP]

    def actions(self, state: Hashable) -> List[Hashable]:
        if state == STOP or state in self.terminals:
            return [STOP]
        return list(self.MOVES.keys())

    def transition_probability(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> float:
        if state == STOP or state in self.terminals:
            return 1 if action == STOP and next_state == STOP else 0

        total = 0
        for move, probability in self.SLIPS[action]:
            di, dj = self.MOVES[move]
            moved = (state[0] + di, state[1] + dj)
            if moved not in self._cell_set:
                moved = state
            if moved == next_state:
                total += probability
        return total

    def reward(self, state: Hashable, action: Hashable, next_state: Hashable) -> float:
        if state == STOP:
            return 0
        return self.grid[state[0]][state[1]]

    def to_grid(self, values: Mapping[Hashable, Any]) -> List[List[Any]]:
        """Lay out per-cell values in the shape of the grid; None where missing."""
        return [
            [values.get((i, j)) for j in range(len(self.grid[i]))]
            for i in range(len(self.grid))
        ]

    def pretty_value(self, value: Mapping[Hashable, float]) -> List[str]:
        """Format a value function as one string per grid row."""
        formatted = {state: f"{v:+.3f}" for state, v in value.items()}
        return [
            " ".join(cell if cell is not None else "      " for cell in row)
            for row in self.to_grid(formatted)
        ]

    def pretty_policy(self, policy: Mapping[Hashable, Hashable]) -> List[str]:
        """Format a policy as arrows, one string per grid row."""
        return [
            " ".join(" " if cell is None or cell == STOP else cell for cell in row)
            for row in self.to_grid(policy)
        ]


def create_aima_grid_model(
    step_reward: float = -0.04,
    grid: Optional[Sequence[Sequence[Optional[float]]]] = None
) -> GridWorldModel:
    """
    Create the 4x3 grid world from Figure 17.1.

    Args:
        step_reward: Reward in every non-terminal cell
        grid: Optional full grid, overriding step_reward

    Returns:
        GridWorldModel with terminals at (0, 3) (+1) and (1, 3) (-1)
    """
    if grid is None:
        r = step_reward
        grid = [
            [r, r,    r, +1],
            [r, None, r, -1],
            [r, r,    r, r],
        ]
    return GridWorldModel(grid, [(0, 3), (1, 3)])
