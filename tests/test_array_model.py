"""
Tests for the ArrayModel module.

Tests the state/action index maps and the conversion of generic
models into compact indexed successor lists.
"""

import pytest

import sys
sys.path.insert(0, '.')

from finite_mdp.model import Model
from finite_mdp.table_model import TableModel
from finite_mdp.array_model import ArrayModel, StateActionMap, OrderedStateActionMap
from finite_mdp.exceptions import ModelContractError, DuplicateTransitionError
from finite_mdp.textbook import create_recycling_robot_model, create_aima_grid_model


class CallbackModel(Model):
    """Model whose pieces are supplied as plain dicts."""

    def __init__(self, actions, successors, probability=1.0):
        self._actions = actions
        self._successors = successors
        self._probability = probability

    def states(self):
        return list(self._actions.keys())

    def actions(self, state):
        return self._actions[state]

    def next_states(self, state, action):
        return self._successors[(state, action)]

    def transition_probability(self, state, action, next_state):
        return self._probability

    def reward(self, state, action, next_state):
        return 0.0


class TestStateActionMap:
    """Tests for the unordered StateActionMap"""

    def test_insertion_order(self):
        """Test that indexes follow insertion order"""
        state_action_map = StateActionMap()
        state_action_map.add("b", ["x", "y"])
        state_action_map.add("a", ["z"])

        assert state_action_map.states() == ["b", "a"]
        assert state_action_map.state_index("a") == 1
        assert state_action_map.state(0) == "b"
        assert state_action_map.actions("b") == ["x", "y"]
        assert state_action_map.state_action_index("b", "y") == (0, 1)
        assert len(state_action_map) == 2

    def test_action_indexes_are_per_state(self):
        """Test that the same action can have different indexes"""
        state_action_map = StateActionMap()
        state_action_map.add("s0", ["left", "right"])
        state_action_map.add("s1", ["right"])

        assert state_action_map.action_index(0, "right") == 1
        assert state_action_map.action_index(1, "right") == 0

    def test_unknown_lookups(self):
        """Test lookups of unknown states and actions"""
        state_action_map = StateActionMap()
        state_action_map.add("a", ["x"])

        assert state_action_map.find("b") is None
        with pytest.raises(KeyError):
            state_action_map.state_index("b")
        with pytest.raises(KeyError):
            state_action_map.action_index(0, "y")

    def test_duplicate_state(self):
        """Test that a state cannot be added twice"""
        state_action_map = StateActionMap()
        state_action_map.add("a", ["x"])

        with pytest.raises(ModelContractError):
            state_action_map.add("a", ["y"])

    def test_actions_are_copied(self):
        """Test that returned action lists do not alias the map"""
        state_action_map = StateActionMap()
        state_action_map.add("a", ["x"])

        state_action_map.actions("a").append("y")

        assert state_action_map.actions("a") == ["x"]


class TestOrderedStateActionMap:
    """Tests for the OrderedStateActionMap"""

    def test_sorted_indexes(self):
        """Test that states are kept in sort order"""
        state_action_map = OrderedStateActionMap()
        state_action_map.add(3, ["c"])
        state_action_map.add(1, ["a"])
        state_action_map.add(2, ["b"])

        assert state_action_map.states() == [1, 2, 3]
        assert state_action_map.state_index(2) == 1
        assert state_action_map.actions(3) == ["c"]
        assert state_action_map.actions_at(0) == ["a"]

    def test_unknown_state(self):
        """Test lookup of a state between and beyond the stored ones"""
        state_action_map = OrderedStateActionMap()
        state_action_map.add(1, ["a"])
        state_action_map.add(3, ["a"])

        assert state_action_map.find(2) is None
        assert state_action_map.find(5) is None
        with pytest.raises(KeyError):
            state_action_map.state_index(0)

    def test_duplicate_state(self):
        """Test that a state cannot be added twice"""
        state_action_map = OrderedStateActionMap()
        state_action_map.add((0, 1), ["x"])

        with pytest.raises(ModelContractError):
            state_action_map.add((0, 1), ["x"])

    def test_from_model_picks_strategy(self):
        """Test that orderable states get the ordered map"""
        robot_map = StateActionMap.from_model(create_recycling_robot_model())
        grid_map = StateActionMap.from_model(create_aima_grid_model())

        assert isinstance(robot_map, OrderedStateActionMap)
        assert type(grid_map) is StateActionMap

    def test_from_model_forced_unordered(self):
        """Test that ordering can be turned off"""
        state_action_map = StateActionMap.from_model(create_recycling_robot_model(), ordered=False)

        assert type(state_action_map) is StateActionMap

    def test_partially_ordered_states_use_unordered_map(self):
        """Test that sortable but not totally ordered states fall back to a scan"""
        states = [frozenset({1}), frozenset({2}), frozenset({3})]
        model = TableModel([
            (states[0], "go", states[1], 1.0, 0.0),
            (states[1], "go", states[2], 1.0, 0.0),
            (states[2], "go", states[0], 1.0, 1.0),
        ])

        assert type(StateActionMap.from_model(model)) is StateActionMap

        array_model = ArrayModel.from_model(model)
        assert array_model.successors(array_model.state_index(states[2]), 0) == [
            (array_model.state_index(states[0]), 1.0, 1.0)
        ]

    def test_incomparable_state_not_found(self):
        """Test that a state of another type is simply not found"""
        state_action_map = OrderedStateActionMap()
        state_action_map.add(1, ["a"])
        state_action_map.add(3, ["a"])

        assert state_action_map.find("1") is None
        with pytest.raises(KeyError):
            state_action_map.state_index("1")


class TestArrayModel:
    """Tests for ArrayModel construction and lookups"""

    @pytest.fixture
    def integer_model(self):
        return TableModel([
            (2, "a", 1, 1.0, 0.0),
            (1, "a", 3, 0.5, 1.0),
            (1, "a", 1, 0.5, 2.0),
            (3, "a", 2, 1.0, 3.0),
            (3, "b", 3, 1.0, 4.0),
        ])

    def test_ordered_indexes(self, integer_model):
        """Test that orderable states are numbered in sort order"""
        model = ArrayModel.from_model(integer_model)

        assert model.states() == [1, 2, 3]
        assert model.num_states == 3
        assert model.array == [
            [[(2, 0.5, 1.0), (0, 0.5, 2.0)]],
            [[(0, 1.0, 0.0)]],
            [[(1, 1.0, 3.0)], [(2, 1.0, 4.0)]],
        ]

    def test_unordered_indexes(self, integer_model):
        """Test that unordered states are numbered in model order"""
        model = ArrayModel.from_model(integer_model, ordered=False)

        assert model.states() == [2, 1, 3]
        assert model.successors(1, 0) == [(2, 0.5, 1.0), (1, 0.5, 2.0)]

    def test_index_lookups(self, integer_model):
        """Test the index-based lookups used by the solver"""
        model = ArrayModel.from_model(integer_model)

        assert model.state_index(3) == 2
        assert model.state(0) == 1
        assert model.actions_at(2) == ["a", "b"]
        assert model.action_index(2, "b") == 1
        assert model.successors(2, 1) == [(2, 1.0, 4.0)]

    def test_sparse_drops_zero_probabilities(self):
        """Test that sparse mode omits zero-probability transitions"""
        table_model = create_recycling_robot_model()

        sparse = ArrayModel.from_model(table_model)
        dense = ArrayModel.from_model(table_model, sparse=False)

        low = sparse.state_index("low")
        recharge = sparse.action_index(low, "recharge")
        assert sparse.successors(low, recharge) == [(sparse.state_index("high"), 1, 0)]
        assert len(dense.successors(low, recharge)) == 2

    def test_direct_construction(self):
        """Test building an ArrayModel from prepared arrays"""
        state_action_map = StateActionMap()
        state_action_map.add("only", ["stay"])
        model = ArrayModel([[[(0, 1.0, 1.0)]]], state_action_map)

        assert model.states() == ["only"]
        assert model.next_states("only", "stay") == ["only"]
        assert model.transition_probability("only", "stay", "only") == 1.0


class TestArrayModelContract:
    """Tests for model-contract violations found while building"""

    def test_state_without_actions(self):
        """Test that a state without actions is rejected"""
        model = CallbackModel({"a": []}, {})

        with pytest.raises(ModelContractError) as excinfo:
            ArrayModel.from_model(model)
        assert excinfo.value.state == "a"

    def test_action_without_successors(self):
        """Test that an action without successor states is rejected"""
        model = CallbackModel({"a": ["x"]}, {("a", "x"): []})

        with pytest.raises(ModelContractError) as excinfo:
            ArrayModel.from_model(model)
        assert excinfo.value.action == "x"

    def test_successor_outside_model(self):
        """Test that a successor must be one of the model's states"""
        model = TableModel([("a", "a_a", "b", 1, 0)])

        with pytest.raises(ModelContractError):
            ArrayModel.from_model(model)

    def test_duplicate_transition(self):
        """Test that a repeated transition is rejected, not overwritten"""
        model = TableModel([
            ("a", "x", "a", 0.5, 1.0),
            ("a", "x", "a", 0.5, 2.0),
        ])

        with pytest.raises(DuplicateTransitionError) as excinfo:
            ArrayModel.from_model(model)
        assert excinfo.value.next_state == "a"
        assert isinstance(excinfo.value, ModelContractError)

    def test_probabilities_must_sum_to_one(self):
        """Test the probability-sum check and how to disable it"""
        model = CallbackModel({"a": ["x"], "b": ["x"]}, {("a", "x"): ["a", "b"], ("b", "x"): ["b"]}, 0.4)

        with pytest.raises(ModelContractError):
            ArrayModel.from_model(model)

        array_model = ArrayModel.from_model(model, tolerance=None)
        assert array_model.successors(0, 0) == [(0, 0.4, 0.0), (1, 0.4, 0.0)]

    def test_incomparable_successor(self):
        """Test that a successor of another type is reported as outside the model"""
        model = CallbackModel({1: ["x"], 2: ["x"]}, {(1, "x"): ["two"], (2, "x"): [2]})

        with pytest.raises(ModelContractError) as excinfo:
            ArrayModel.from_model(model)
        assert excinfo.value.state == 1

    def test_missing_reward_in_dense_mode(self):
        """Test that a stored reward of None is rejected"""
        model = TableModel([
            ("a", "x", "a", 1.0, 1.0),
            ("a", "x", "b", 0.0, None),
            ("b", "x", "b", 1.0, 0.0),
        ])

        assert ArrayModel.from_model(model).successors(0, 0) == [(0, 1.0, 1.0)]
        with pytest.raises(ModelContractError) as excinfo:
            ArrayModel.from_model(model, sparse=False)
        assert excinfo.value.state == "a"
        assert excinfo.value.action == "x"
