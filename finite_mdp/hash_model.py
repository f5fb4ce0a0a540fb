"""
Nested-dict storage for finite MDP models.

The structure is:
    hash[state]                     -> dict from actions to successors
    hash[state][action]             -> dict from next states to pairs
    hash[state][action][next_state] -> (probability, reward)
"""

from typing import Any, Dict, Hashable, List, Tuple

from .model import Model

Transitions = Dict[Hashable, Dict[Hashable, Dict[Hashable, Tuple[float, Any]]]]


class HashModel(Model):
    """
    A model stored as nested dicts keyed by state, action and next state.

    Lookups are O(1). Dict insertion order fixes the order of states,
    actions and next states.
    """

    def __init__(self, hash: Transitions):
        self.hash = hash

    def states(self) -> List[Hashable]:
        return list(self.hash.keys())

    def actions(self, state: Hashable) -> List[Hashable]:
        return list(self.hash[state].keys())

    def next_states(self, state: Hashable, action: Hashable) -> List[Hashable]:
        return list(self.hash[state][action].keys())

    def transition_probability(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> float:
        """Stored probability; zero if the transition is not stored."""
        entry = self.hash[state][action].get(next_state)
        return entry[0] if entry is not None else 0

    def reward(self, state: Hashable, action: Hashable, next_state: Hashable) -> Any:
        """Stored reward; None if the transition is not stored."""
        entry = self.hash[state][action].get(next_state)
        return entry[1] if entry is not None else None

    @classmethod
    def from_model(cls, model: Model, sparse: bool = True) -> 'HashModel':
        """
        Convert any model into a hash model.

        Args:
            model: Model to convert
            sparse: Skip transitions with zero probability
        """
        hash = {}
        for state in model.states():
            by_action = hash.setdefault(state, {})
            for action in model.actions(state):
                successors = by_action.setdefault(action, {})
                for next_state in model.next_states(state, action):
                    probability = model.transition_probability(state, action, next_state)
                    if probability > 0 or not sparse:
                        successors[next_state] = (
                            probability,
                            model.reward(state, action, next_state)
                        )
        return cls(hash)
