"""
Custom exceptions for the finite MDP solver.

Provides descriptive error types for model-contract violations,
solver configuration problems and numerical failures.
"""

from typing import Any, Optional


class FiniteMDPError(Exception):
    """Base exception for all finite MDP errors."""
    pass


class ModelContractError(FiniteMDPError):
    """Raised when a model breaks the states/actions/transitions contract."""

    def __init__(self, message: str, state: Optional[Any] = None, action: Optional[Any] = None):
        super().__init__(message)
        self.state = state
        self.action = action


class DuplicateTransitionError(ModelContractError):
    """Raised when a (state, action, next_state) transition is enumerated twice."""

    def __init__(self, state: Any, action: Any, next_state: Any):
        msg = (
            f"Transition from state {state!r} under action {action!r} "
            f"to {next_state!r} appears more than once"
        )
        super().__init__(msg, state=state, action=action)
        self.next_state = next_state


class IncompleteConfigurationError(FiniteMDPError):
    """Raised when a solver is missing an initial value or policy entry."""

    def __init__(self, message: str, states: Optional[list] = None):
        if states:
            msg = f"{message}: {states[:5]!r}"
            if len(states) > 5:
                msg += f" (and {len(states) - 5} more)"
        else:
            msg = message
        super().__init__(msg)
        self.states = states or []


class SingularSystemError(FiniteMDPError):
    """Raised when exact policy evaluation hits a singular linear system."""

    def __init__(self, message: str, discount: Optional[float] = None):
        super().__init__(message)
        self.discount = discount


class InvalidParameterError(FiniteMDPError, ValueError):
    """Raised when invalid parameters are provided."""
    pass
