"""
Table storage for finite MDP models.

Each row is (state, action, next_state, probability, reward), which is the
usual way of writing down small models from textbooks.
"""

from typing import Any, Hashable, List, Optional, Sequence, Tuple

from .model import Model

Row = Tuple[Hashable, Hashable, Hashable, float, Any]


class TableModel(Model):
    """
    A model whose transitions are listed row by row.

    Lookups scan the rows, so this is meant for small models; the Solver
    converts it to an ArrayModel before iterating.

    Attributes:
        rows: List of (state, action, next_state, probability, reward)
    """

    def __init__(self, rows: Sequence[Row]):
        self.rows = [tuple(row) for row in rows]

    def states(self) -> List[Hashable]:
        return list(dict.fromkeys(row[0] for row in self.rows))

    def actions(self, state: Hashable) -> List[Hashable]:
        return list(dict.fromkeys(row[1] for row in self.rows if row[0] == state))

    def next_states(self, state: Hashable, action: Hashable) -> List[Hashable]:
        return [
            row[2] for row in self.rows
            if row[0] == state and row[1] == action
        ]

    def transition_probability(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> float:
        """Probability from the matching row; zero if there is no such row."""
        row = self._find_row(state, action, next_state)
        return row[3] if row is not None else 0

    def reward(self, state: Hashable, action: Hashable, next_state: Hashable) -> Any:
        """Reward from the matching row; None if there is no such row."""
        row = self._find_row(state, action, next_state)
        return row[4] if row is not None else None

    def _find_row(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> Optional[Row]:
        for row in self.rows:
            if row[0] == state and row[1] == action and row[2] == next_state:
                return row
        return None

    def __repr__(self) -> str:
        return "\n".join(repr(row) for row in self.rows)

    @classmethod
    def from_model(cls, model: Model, sparse: bool = True) -> 'TableModel':
        """
        Convert any model into a table model.

        Args:
            model: Model to convert
            sparse: Skip transitions with zero probability
        """
        rows = []
        for state in model.states():
            for action in model.actions(state):
                for next_state in model.next_states(state, action):
                    probability = model.transition_probability(state, action, next_state)
                    if probability > 0 or not sparse:
                        reward = model.reward(state, action, next_state)
                        rows.append((state, action, next_state, probability, reward))
        return cls(rows)
