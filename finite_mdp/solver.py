"""
Dynamic programming solvers for finite MDPs

Implements:
- Iterative policy evaluation
- Exact policy evaluation (linear system)
- Policy improvement
- Value iteration
- Policy iteration (iterative or exact evaluation)

Based on the Bellman equation:
V(s) = max_{a∈A(s)} Σ_{s'} P(s'|s,a) * [R(s,a,s') + γ * V(s')]

The solvers find deterministic policies for infinite-horizon problems.
See Sutton and Barto (1998), Chapter 4.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Tuple

import numpy as np
import scipy.linalg

from .array_model import ArrayModel
from .exceptions import (
    IncompleteConfigurationError,
    InvalidParameterError,
    ModelContractError,
    SingularSystemError,
)
from .model import Model

logger = logging.getLogger(__name__)


@dataclass
class SolverResult:
    """
    Result from running an MDP solver.

    Attributes:
        value_function: Dictionary mapping states to values V(s)
        policy: Dictionary mapping states to actions π(s)
        iterations: Number of value iteration sweeps or policy improvement steps
        converged: Whether the solver converged
        history: Largest value change recorded at each iteration
        method: Name of the method that produced this result
    """
    value_function: Dict[Hashable, float] = field(default_factory=dict)
    policy: Dict[Hashable, Hashable] = field(default_factory=dict)
    iterations: int = 0
    converged: bool = False
    history: List[float] = field(default_factory=list)
    method: str = ""


class Solver:
    """
    Find optimal values and policies with policy iteration and/or value
    iteration.

    The computations run on an ArrayModel, which numbers the states and
    actions so that the iterations avoid hashing. The value and policy
    vectors are indexed by state number; value() and policy() convert them
    back to the original states and actions.

    Do not change the model while it is being solved.
    """

    def __init__(
        self,
        model: Model,
        discount: float,
        policy: Optional[Mapping[Hashable, Hashable]] = None,
        value: Optional[Mapping[Hashable, float]] = None
    ):
        """
        Args:
            model: Model to solve; converted to an ArrayModel if needed
            discount: Discount factor γ in (0, 1]
            policy: Initial action for each state; if None, the first action
                of each state is used
            value: Initial value for each state; if None, every state starts
                at zero

        Raises:
            InvalidParameterError: If the discount is outside (0, 1]
            IncompleteConfigurationError: If some state has no initial value
                or no valid initial action
        """
        if not 0 < discount <= 1:
            raise InvalidParameterError(f"Discount must be in (0, 1], got {discount}")
        self._discount = float(discount)

        if isinstance(model, ArrayModel):
            self._model = model
        else:
            self._model = ArrayModel.from_model(model)

        num_states = self._model.num_states
        self._value = self._initial_value(value, num_states)
        self._policy = self._initial_policy(policy, num_states)

        # successor lists as (next indexes, probabilities, rewards) arrays
        self._successors = [
            [
                (
                    np.array([t for t, _, _ in successors], dtype=np.intp),
                    np.array([p for _, p, _ in successors], dtype=np.float64),
                    np.array([r for _, _, r in successors], dtype=np.float64),
                )
                for successors in actions
            ]
            for actions in self._model.array
        ]

        # linear system for exact policy evaluation, built on first use
        self._policy_A: Optional[np.ndarray] = None
        self._policy_b: Optional[np.ndarray] = None
        self._policy_A_action: Optional[np.ndarray] = None

    def _initial_value(
        self,
        value: Optional[Mapping[Hashable, float]],
        num_states: int
    ) -> np.ndarray:
        if value is None:
            return np.zeros(num_states, dtype=np.float64)

        array_value = np.zeros(num_states, dtype=np.float64)
        missing = []
        for state_index in range(num_states):
            state = self._model.state(state_index)
            try:
                state_value = float(value[state])
            except (KeyError, TypeError, ValueError):
                missing.append(state)
                continue
            # NaN and infinities count as missing
            if not np.isfinite(state_value):
                missing.append(state)
                continue
            array_value[state_index] = state_value
        if missing:
            raise IncompleteConfigurationError("Some initial values are missing", missing)
        return array_value

    def _initial_policy(
        self,
        policy: Optional[Mapping[Hashable, Hashable]],
        num_states: int
    ) -> np.ndarray:
        if policy is None:
            return np.zeros(num_states, dtype=np.intp)

        array_policy = np.zeros(num_states, dtype=np.intp)
        missing = []
        for state_index in range(num_states):
            state = self._model.state(state_index)
            try:
                array_policy[state_index] = self._model.action_index(state_index, policy[state])
            except KeyError:
                missing.append(state)
        if missing:
            raise IncompleteConfigurationError("Some initial policy actions are missing", missing)
        return array_policy

    @property
    def model(self) -> ArrayModel:
        """The model being solved; read only."""
        return self._model

    @property
    def discount(self) -> float:
        return self._discount

    @property
    def array_value(self) -> np.ndarray:
        """Copy of the value vector, indexed by state number."""
        return self._value.copy()

    @property
    def array_policy(self) -> np.ndarray:
        """Copy of the policy vector of action indexes, indexed by state number."""
        return self._policy.copy()

    def value(self) -> Dict[Hashable, float]:
        """
        Current value estimate for each state.

        Changing the returned dict does not affect the solver.
        """
        return {
            self._model.state(state_index): float(v)
            for state_index, v in enumerate(self._value)
        }

    def policy(self) -> Dict[Hashable, Hashable]:
        """
        Current estimate of the optimal action for each state.

        Changing the returned dict does not affect the solver.
        """
        return {
            self._model.state(state_index): self._model.actions_at(state_index)[action_index]
            for state_index, action_index in enumerate(self._policy)
        }

    def state_action_value(self) -> Dict[Tuple[Hashable, Hashable], float]:
        """
        Current state-action values Q(s, a) under the current value estimate.

        Returns:
            Dictionary mapping (state, action) pairs to Q-values
        """
        q = {}
        for state_index in range(self._model.num_states):
            state = self._model.state(state_index)
            for action_index, action in enumerate(self._model.actions_at(state_index)):
                q[(state, action)] = self.backup(state_index, action_index)
        return q

    def backup(self, state_index: int, action_index: int) -> float:
        """
        Expected one-step return for a state-action pair.

        Q(s, a) = Σ_{s'} P(s'|s,a) * [R(s,a,s') + γ * V(s')]
        """
        next_states, probabilities, rewards = self._successors[state_index][action_index]
        return float(np.dot(probabilities, rewards + self._discount * self._value[next_states]))

    def _best_action(self, state_index: int) -> Tuple[int, float]:
        best_action = None
        best_value = 0.0
        for action_index in range(len(self._successors[state_index])):
            v = self.backup(state_index, action_index)
            if best_action is None or v > best_value:
                best_action = action_index
                best_value = v
        if best_action is None:
            state = self._model.state(state_index)
            raise ModelContractError(f"No feasible actions in state {state!r}", state=state)
        return best_action, best_value

    def evaluate_policy(self) -> float:
        """
        Refine the value estimate for the current policy by one sweep of the
        Bellman equations; see also evaluate_policy_exact.

        Values are updated in place, so states later in the sweep already see
        the new values of earlier states.

        Returns:
            Largest absolute change in the value function over all states
        """
        delta = 0.0
        for state_index in range(self._model.num_states):
            new_value = self.backup(state_index, self._policy[state_index])
            delta = max(delta, abs(self._value[state_index] - new_value))
            self._value[state_index] = new_value
        return delta

    def evaluate_policy_exact(self) -> None:
        """
        Evaluate the current policy by solving the linear system

            V(s) - γ * Σ_{s'} P(s'|s,π(s)) V(s') = Σ_{s'} P(s'|s,π(s)) R(s,π(s),s')

        of n equations in n unknowns, n being the number of states.

        Uses dense linear algebra, so the full n-by-n matrix is held in
        memory. All coefficients are computed on the first call; later calls
        only recompute the rows of states whose action has changed since.

        Raises:
            SingularSystemError: If the system has no unique solution, for
                example with discount 1 and a policy that never terminates
        """
        if self._policy_A is None:
            num_states = self._model.num_states
            self._policy_A = np.zeros((num_states, num_states), dtype=np.float64)
            self._policy_b = np.zeros(num_states, dtype=np.float64)
            self._policy_A_action = np.full(num_states, -1, dtype=np.intp)
            for state_index in range(num_states):
                self._update_policy_Ab(state_index, self._policy[state_index])
        else:
            stale = np.flatnonzero(self._policy_A_action != self._policy)
            for state_index in stale:
                self._update_policy_Ab(state_index, self._policy[state_index])
            logger.debug("Rebuilt %d rows of the policy evaluation system", len(stale))

        try:
            value = scipy.linalg.solve(self._policy_A, self._policy_b)
        except scipy.linalg.LinAlgError as err:
            raise SingularSystemError(
                f"Cannot evaluate policy exactly: {err}", discount=self._discount
            ) from err
        if not np.all(np.isfinite(value)):
            raise SingularSystemError(
                "Cannot evaluate policy exactly: solution is not finite",
                discount=self._discount
            )
        self._value = np.asarray(value, dtype=np.float64)

    def _update_policy_Ab(self, state_index: int, action_index: int) -> None:
        next_states, probabilities, rewards = self._successors[state_index][action_index]
        row = self._policy_A[state_index]
        row[:] = 0.0
        np.subtract.at(row, next_states, self._discount * probabilities)
        row[state_index] += 1.0
        self._policy_b[state_index] = np.dot(probabilities, rewards)
        self._policy_A_action[state_index] = action_index

    def improve_policy(self) -> bool:
        """
        Make the policy greedy with respect to the current value function.

        Ties go to the action that comes first in the state's action list.

        Returns:
            True if the action changed for any state; False once the policy
            is stable
        """
        changed = False
        for state_index in range(self._model.num_states):
            best_action, _ = self._best_action(state_index)
            if self._policy[state_index] != best_action:
                changed = True
                self._policy[state_index] = best_action
        return changed

    def value_iteration_single(self) -> float:
        """
        One sweep of value iteration.

        Equivalent to evaluate_policy followed by improve_policy, fused into
        one pass (Sutton and Barto, Figure 4.5).

        Returns:
            Largest absolute change in the value function over all states
        """
        delta = 0.0
        for state_index in range(self._model.num_states):
            best_action, best_value = self._best_action(state_index)
            delta = max(delta, abs(self._value[state_index] - best_value))
            self._value[state_index] = best_value
            self._policy[state_index] = best_action
        return delta

    def value_iteration(
        self,
        tolerance: float,
        max_iters: Optional[int] = None,
        callback: Optional[Callable[[int, float], Any]] = None
    ) -> bool:
        """
        Run value_iteration_single until the largest change in the value
        function drops below tolerance.

        Args:
            tolerance: Small positive number
            max_iters: Stop after this many sweeps even if not converged;
                None means no limit
            callback: Called as callback(num_iters, delta) after each sweep

        Returns:
            True iff the value function converged to within tolerance
        """
        num_iters = 0
        while True:
            delta = self.value_iteration_single()
            num_iters += 1
            logger.debug("Value iteration %d: delta=%g", num_iters, delta)
            if callback is not None:
                callback(num_iters, delta)

            if delta < tolerance:
                logger.info("Value iteration converged after %d iterations", num_iters)
                return True
            if max_iters is not None and num_iters >= max_iters:
                logger.info(
                    "Value iteration stopped after %d iterations (delta=%g)", num_iters, delta
                )
                return False

    def policy_iteration(
        self,
        value_tolerance: float,
        max_value_iters: Optional[int] = None,
        max_policy_iters: Optional[int] = None,
        callback: Optional[Callable[[int, int, float], Any]] = None
    ) -> bool:
        """
        Policy iteration with iterative policy evaluation.

        Args:
            value_tolerance: The evaluation phase ends once the largest change
                in the value function is below this tolerance
            max_value_iters: Cap on evaluation sweeps per policy; None means
                no limit
            max_policy_iters: Cap on policy improvement steps; None means no
                limit
            callback: Called as callback(num_policy_iters, num_value_iters,
                delta) after each evaluation sweep

        Returns:
            True iff a stable policy was found
        """
        num_policy_iters = 0
        while True:
            num_value_iters = 0
            while True:
                delta = self.evaluate_policy()
                num_value_iters += 1
                if callback is not None:
                    callback(num_policy_iters, num_value_iters, delta)

                if delta < value_tolerance:
                    break
                if max_value_iters is not None and num_value_iters >= max_value_iters:
                    break

            changed = self.improve_policy()
            num_policy_iters += 1
            logger.debug(
                "Policy iteration %d: %d evaluation sweeps, policy %s",
                num_policy_iters, num_value_iters, "changed" if changed else "stable"
            )

            if not changed:
                logger.info("Policy iteration found a stable policy after %d iterations", num_policy_iters)
                return True
            if max_policy_iters is not None and num_policy_iters >= max_policy_iters:
                logger.info("Policy iteration stopped after %d iterations", num_policy_iters)
                return False

    def policy_iteration_exact(
        self,
        max_iters: Optional[int] = None,
        callback: Optional[Callable[[int], Any]] = None
    ) -> bool:
        """
        Policy iteration with exact policy evaluation.

        Args:
            max_iters: Cap on policy improvement steps; None means no limit
            callback: Called as callback(num_iters) after each iteration

        Returns:
            True iff a stable policy was found
        """
        num_iters = 0
        while True:
            self.evaluate_policy_exact()
            changed = self.improve_policy()
            num_iters += 1
            if callback is not None:
                callback(num_iters)

            if not changed:
                logger.info("Exact policy iteration found a stable policy after %d iterations", num_iters)
                return True
            if max_iters is not None and num_iters >= max_iters:
                logger.info("Exact policy iteration stopped after %d iterations", num_iters)
                return False


METHODS = ("value_iteration", "policy_iteration", "policy_iteration_exact")


def solve(
    model: Model,
    discount: float,
    method: str = "value_iteration",
    tolerance: float = 1e-6,
    max_iters: Optional[int] = None,
    max_value_iters: Optional[int] = None,
    policy: Optional[Mapping[Hashable, Hashable]] = None,
    value: Optional[Mapping[Hashable, float]] = None
) -> SolverResult:
    """
    Solve a model with one of the Solver's methods and collect the result.

    Args:
        model: Model to solve
        discount: Discount factor γ in (0, 1]
        method: One of "value_iteration", "policy_iteration" or
            "policy_iteration_exact"
        tolerance: Value tolerance for value iteration and for the evaluation
            phase of policy iteration; unused by exact policy iteration
        max_iters: Cap on value iteration sweeps or policy improvement steps
        max_value_iters: Cap on evaluation sweeps per policy (policy_iteration)
        policy: Optional initial policy
        value: Optional initial value function

    Returns:
        SolverResult; history holds the largest value change per sweep, or
        per policy for exact policy iteration
    """
    if method not in METHODS:
        raise InvalidParameterError(f"Unknown solve method: {method}")

    solver = Solver(model, discount, policy=policy, value=value)
    history: List[float] = []

    if method == "value_iteration":
        converged = solver.value_iteration(
            tolerance, max_iters,
            callback=lambda num_iters, delta: history.append(delta)
        )
        iterations = len(history)
    elif method == "policy_iteration":
        iterations = 0

        def record_sweep(num_policy_iters, num_value_iters, delta):
            nonlocal iterations
            iterations = num_policy_iters + 1
            history.append(delta)

        converged = solver.policy_iteration(
            tolerance, max_value_iters, max_iters, callback=record_sweep
        )
    else:
        previous = solver.array_value

        def record_policy(num_iters):
            nonlocal previous
            current = solver.array_value
            history.append(float(np.max(np.abs(current - previous))))
            previous = current

        converged = solver.policy_iteration_exact(max_iters, callback=record_policy)
        iterations = len(history)

    return SolverResult(
        value_function=solver.value(),
        policy=solver.policy(),
        iterations=iterations,
        converged=converged,
        history=history,
        method=method
    )
