"""
Compact indexed representation of a finite MDP.

States are numbered 0..n-1 and each state's actions are numbered by their
position in that state's action list, so action index 3 in state 0 has
nothing to do with action index 3 in state 1. Transitions are stored in a
sparse nested list:

    array[state_index][action_index] = [(next_state_index, probability, reward), ...]

The Solver works purely on these indexes and only converts back to the
original state and action objects when results are read out.
"""

import bisect
import logging
import math
import numbers
from typing import Any, Hashable, List, Optional, Sequence, Tuple

from .exceptions import DuplicateTransitionError, ModelContractError
from .model import Model

logger = logging.getLogger(__name__)

Successor = Tuple[int, float, Any]


class StateActionMap:
    """
    Map between states and actions and their indexes.

    Lookups scan the states by equality, so this works for states that have
    no natural order, at O(n) per lookup.
    """

    def __init__(self):
        self._states: List[Hashable] = []
        self._actions: List[List[Hashable]] = []

    def add(self, state: Hashable, actions: Sequence[Hashable]) -> None:
        """Add a state together with its actions, in action-index order."""
        if self.find(state) is not None:
            raise ModelContractError(f"State {state!r} is listed more than once", state=state)
        self._states.append(state)
        self._actions.append(list(actions))

    def find(self, state: Hashable) -> Optional[int]:
        """Index of the given state, or None if it is not in the map."""
        for index, test_state in enumerate(self._states):
            if test_state == state:
                return index
        return None

    def state_index(self, state: Hashable) -> int:
        index = self.find(state)
        if index is None:
            raise KeyError(state)
        return index

    def state(self, index: int) -> Hashable:
        return self._states[index]

    def states(self) -> List[Hashable]:
        return list(self._states)

    def actions(self, state: Hashable) -> List[Hashable]:
        return self.actions_at(self.state_index(state))

    def actions_at(self, state_index: int) -> List[Hashable]:
        return list(self._actions[state_index])

    def action_index(self, state_index: int, action: Hashable) -> int:
        try:
            return self._actions[state_index].index(action)
        except ValueError:
            raise KeyError(action) from None

    def state_action_index(self, state: Hashable, action: Hashable) -> Tuple[int, int]:
        index = self.state_index(state)
        return index, self.action_index(index, action)

    def __len__(self) -> int:
        return len(self._states)

    @staticmethod
    def from_model(model: Model, ordered: Optional[bool] = None) -> 'StateActionMap':
        """
        Build a map from a model.

        Args:
            model: Model to index
            ordered: Keep states sorted for binary-search lookups; the
                default is to use sorting whenever the states allow it
        """
        model_states = model.states()
        if ordered is None:
            ordered = _is_orderable(model_states)
        state_action_map = OrderedStateActionMap() if ordered else StateActionMap()
        for state in model_states:
            actions = model.actions(state)
            if len(actions) == 0:
                raise ModelContractError(f"State {state!r} has no actions", state=state)
            state_action_map.add(state, actions)
        return state_action_map


class OrderedStateActionMap(StateActionMap):
    """
    A StateActionMap for states that support ordering.

    States are kept sorted, so lookups are O(log n). State indexes follow the
    sort order rather than the order in which states were added.
    """

    def add(self, state: Hashable, actions: Sequence[Hashable]) -> None:
        index = bisect.bisect_left(self._states, state)
        if index < len(self._states) and self._states[index] == state:
            raise ModelContractError(f"State {state!r} is listed more than once", state=state)
        self._states.insert(index, state)
        self._actions.insert(index, list(actions))

    def find(self, state: Hashable) -> Optional[int]:
        try:
            index = bisect.bisect_left(self._states, state)
        except TypeError:
            # not comparable with the stored states, so not one of them
            return None
        if index < len(self._states) and self._states[index] == state:
            return index
        return None


def _is_orderable(states: Sequence[Hashable]) -> bool:
    """Check that the states are totally ordered, not just sortable."""
    try:
        ordered = sorted(states)
        return all(a < b for a, b in zip(ordered, ordered[1:]))
    except TypeError:
        return False


class ArrayModel(Model):
    """
    A finite MDP stored as indexed, sparse successor lists.

    Attributes:
        array: Nested list, array[state_index][action_index] is a list of
               (next_state_index, probability, reward) tuples
        state_action_map: Map between states/actions and their indexes
    """

    def __init__(self, array: List[List[List[Successor]]], state_action_map: StateActionMap):
        self.array = array
        self.state_action_map = state_action_map

    @property
    def num_states(self) -> int:
        return len(self.state_action_map)

    def states(self) -> List[Hashable]:
        return self.state_action_map.states()

    def actions(self, state: Hashable) -> List[Hashable]:
        return self.state_action_map.actions(state)

    def next_states(self, state: Hashable, action: Hashable) -> List[Hashable]:
        state_index, action_index = self.state_action_map.state_action_index(state, action)
        return [
            self.state_action_map.state(next_index)
            for next_index, _, _ in self.array[state_index][action_index]
        ]

    def transition_probability(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> float:
        """Stored probability; zero if the transition is not stored."""
        entry = self._find_successor(state, action, next_state)
        return entry[1] if entry is not None else 0

    def reward(self, state: Hashable, action: Hashable, next_state: Hashable) -> Any:
        """Stored reward; None if the transition is not stored."""
        entry = self._find_successor(state, action, next_state)
        return entry[2] if entry is not None else None

    def _find_successor(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> Optional[Successor]:
        state_index, action_index = self.state_action_map.state_action_index(state, action)
        next_index = self.state_action_map.find(next_state)
        for entry in self.array[state_index][action_index]:
            if entry[0] == next_index:
                return entry
        return None

    # Index-based lookups used by the Solver

    def state_index(self, state: Hashable) -> int:
        return self.state_action_map.state_index(state)

    def state(self, index: int) -> Hashable:
        return self.state_action_map.state(index)

    def actions_at(self, state_index: int) -> List[Hashable]:
        return self.state_action_map.actions_at(state_index)

    def action_index(self, state_index: int, action: Hashable) -> int:
        return self.state_action_map.action_index(state_index, action)

    def successors(self, state_index: int, action_index: int) -> List[Successor]:
        return self.array[state_index][action_index]

    @classmethod
    def from_model(
        cls,
        model: Model,
        sparse: bool = True,
        ordered: Optional[bool] = None,
        tolerance: Optional[float] = 1e-6
    ) -> 'ArrayModel':
        """
        Convert a generic model into an array model.

        Args:
            model: Model to convert
            sparse: Do not store transitions with zero probability
            ordered: Assume states are orderable; the default is to check
                whether they can be sorted
            tolerance: Require the probabilities for each (state, action)
                pair to sum to one within this tolerance; None skips the check

        Raises:
            ModelContractError: If a state has no actions, an action has no
                successors, a successor is not a state of the model, a stored
                reward is not a number or the probabilities do not sum to one
            DuplicateTransitionError: If a successor is listed twice
        """
        state_action_map = StateActionMap.from_model(model, ordered)

        array = []
        num_transitions = 0
        for state_index in range(len(state_action_map)):
            state = state_action_map.state(state_index)
            state_successors = []
            for action in state_action_map.actions_at(state_index):
                model_next_states = model.next_states(state, action)
                if len(model_next_states) == 0:
                    raise ModelContractError(
                        f"Action {action!r} in state {state!r} has no successor states",
                        state=state,
                        action=action
                    )

                successors = []
                seen = set()
                total = 0.0
                for next_state in model_next_states:
                    next_index = state_action_map.find(next_state)
                    if next_index is None:
                        raise ModelContractError(
                            f"Successor {next_state!r} of state {state!r} under action "
                            f"{action!r} is not a state of the model",
                            state=state,
                            action=action
                        )
                    if next_index in seen:
                        raise DuplicateTransitionError(state, action, next_state)
                    seen.add(next_index)

                    probability = model.transition_probability(state, action, next_state)
                    total += probability
                    if probability > 0 or not sparse:
                        reward = model.reward(state, action, next_state)
                        if not isinstance(reward, numbers.Real) or math.isnan(reward):
                            raise ModelContractError(
                                f"Reward {reward!r} for state {state!r}, action {action!r} "
                                f"and successor {next_state!r} is not a number",
                                state=state,
                                action=action
                            )
                        successors.append((next_index, probability, reward))

                if tolerance is not None and abs(total - 1.0) > tolerance:
                    raise ModelContractError(
                        f"Transition probabilities for state {state!r} and action "
                        f"{action!r} sum to {total}",
                        state=state,
                        action=action
                    )
                num_transitions += len(successors)
                state_successors.append(successors)
            array.append(state_successors)

        logger.debug(
            "Built %s array model: %d states, %d stored transitions",
            "sparse" if sparse else "dense", len(state_action_map), num_transitions
        )
        return cls(array, state_action_map)
