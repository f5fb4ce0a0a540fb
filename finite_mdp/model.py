"""
Generic interface for finite Markov decision process models.

Defines the contract between models and the Solver. A model can be written
directly as a TableModel or HashModel (usually the way to go for small,
textbook-sized problems), or as a subclass of Model that computes states,
transition probabilities and rewards on demand.

States and actions can be arbitrary objects, as long as equality and hashing
are based on their content: tuples, strings, ints, frozen dataclasses and
namedtuples all work. Plain custom classes compare by identity, which is
usually not what you want; see VectorValued for a mixin that fixes this.

There is no special treatment for terminal states. Model them with a dummy
absorbing state that has zero reward and a single action leading back to
itself with probability one.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Hashable, List, Set, Tuple

from .exceptions import ModelContractError


class Model(ABC):
    """
    Abstract base class for finite MDP models.
    """

    @abstractmethod
    def states(self) -> List[Hashable]:
        """
        States in this model.

        Returns:
            Non-empty list of states with no duplicates
        """
        pass

    @abstractmethod
    def actions(self, state: Hashable) -> List[Hashable]:
        """
        Actions that are valid in the given state.

        Every state must have at least one action.

        Returns:
            Non-empty list of actions with no duplicates
        """
        pass

    def next_states(self, state: Hashable, action: Hashable) -> List[Hashable]:
        """
        Candidate successor states after taking action in state.

        The returned states may occur with zero probability. The default is
        to offer every state and let transition_probability decide; override
        in sparse models to avoid computing lots of zeros.
        """
        return self.states()

    @abstractmethod
    def transition_probability(
        self,
        state: Hashable,
        action: Hashable,
        next_state: Hashable
    ) -> float:
        """
        Probability of moving from state to next_state under action.

        The result is undefined for transitions that never arise from
        states(), actions() and next_states().
        """
        pass

    @abstractmethod
    def reward(self, state: Hashable, action: Hashable, next_state: Hashable) -> Any:
        """
        Reward for the given transition.

        The result is undefined for transitions that never arise from
        states(), actions() and next_states().
        """
        pass

    def transition_probability_sums(self) -> Dict[Tuple[Hashable, Hashable], float]:
        """Sum of transition probabilities for each (state, action) pair."""
        sums = {}
        for state in self.states():
            for action in self.actions(state):
                sums[(state, action)] = sum(
                    self.transition_probability(state, action, next_state)
                    for next_state in self.next_states(state, action)
                )
        return sums

    def check_transition_probabilities_sum(self, tol: float = 1e-6) -> None:
        """
        Raise if the transition probabilities for any (state, action) pair
        do not sum to one within tol.
        """
        for (state, action), total in self.transition_probability_sums().items():
            if abs(total - 1.0) > tol:
                raise ModelContractError(
                    f"Transition probabilities for state {state!r} and action "
                    f"{action!r} sum to {total}",
                    state=state,
                    action=action
                )

    def terminal_states(self) -> Set[Hashable]:
        """
        States with no transitions out.

        Includes states that only show up as successors. A state whose
        transitions all have probability zero is not counted; use
        transition_probability_sums to find those.
        """
        all_states = set()
        out_states = set()
        for state in self.states():
            all_states.add(state)
            has_out_transitions = False
            for action in self.actions(state):
                successors = self.next_states(state, action)
                all_states.update(successors)
                has_out_transitions = has_out_transitions or len(successors) > 0
            if has_out_transitions:
                out_states.add(state)
        return all_states - out_states
