"""
Finite Markov Decision Process Solver

This package finds optimal policies and value functions for finite MDPs
with classical dynamic programming: policy iteration, value iteration and
exact policy evaluation by solving a linear system.

Models can be written as a table of transitions, as nested dicts, or as a
subclass of Model; the Solver converts them to a compact indexed form
before iterating.

Based on: Sutton and Barto (1998), "Reinforcement Learning: An Introduction",
Chapter 4
"""

from .model import Model
from .table_model import TableModel
from .hash_model import HashModel
from .array_model import ArrayModel, StateActionMap, OrderedStateActionMap
from .vector_valued import VectorValued
from .solver import METHODS, Solver, SolverResult, solve
from .exceptions import (
    FiniteMDPError,
    ModelContractError,
    DuplicateTransitionError,
    IncompleteConfigurationError,
    SingularSystemError,
    InvalidParameterError
)

__version__ = "1.0.0"
__all__ = [
    "Model",
    "TableModel",
    "HashModel",
    "ArrayModel",
    "StateActionMap",
    "OrderedStateActionMap",
    "VectorValued",
    "Solver",
    "SolverResult",
    "solve",
    "METHODS",
    "FiniteMDPError",
    "ModelContractError",
    "DuplicateTransitionError",
    "IncompleteConfigurationError",
    "SingularSystemError",
    "InvalidParameterError",
]
