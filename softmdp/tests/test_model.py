import numpy as np

from softmdp.model import Edge, Model


def _cycle_model() -> Model:
    # 0 -> 1 -> 2 -> 3 -> 0 with a shortcut 1 -> 3
    return Model(
        [0, 1, 2, 3],
        [Edge(0, 1, -1), Edge(1, 2, -1), Edge(1, 3, 0), Edge(2, 3, -1), Edge(3, 0, -1)],
    )


def test_model_sizes_and_topology():
    model = _cycle_model()
    assert model.num_states() == 4
    assert model.num_actions() == 5
    assert model.states[1].actions == (1, 2)
    # Transitions entering state 3 come from actions 1->3 and 2->3
    assert model.states[3].incoming == (2, 3)
    assert model.actions[4].source == 3 and model.actions[4].target == 0
    np.testing.assert_array_equal(model.rewards, [-1, -1, 0, -1, -1])
    assert model.num_dropped_edges == 0


def test_model_drops_unknown_edges():
    model = Model(['a', 'b'], [('a', 'b', -1.0), ('a', 'zz', -1.0), ('yy', 'b', -1.0), ('b', 'a', -2.0)])
    assert model.num_actions() == 2
    assert model.num_dropped_edges == 2
    assert model.action_between('b', 'a').index == 1


def test_model_keeps_parallel_edges():
    model = Model(['a', 'b'], [('a', 'b', -1.0), ('a', 'b', -3.0)])
    assert model.num_actions() == 2
    assert model.states[0].actions == (0, 1)
    # First matching action wins
    assert model.action_between('a', 'b').index == 0


def test_set_reward():
    model = _cycle_model()
    assert model.set_reward(2, -0.5)
    assert model.transition(2).reward == -0.5

    before = model.rewards.copy()
    assert not model.set_reward(5, 10.0)
    assert not model.set_reward(-1, 10.0)
    np.testing.assert_array_equal(model.rewards, before)


def test_update_reward():
    model = _cycle_model()
    assert model.update_reward([-2.0] * 5)
    np.testing.assert_array_equal(model.rewards, [-2.0] * 5)
    assert not model.update_reward([0.0] * 4)
    np.testing.assert_array_equal(model.rewards, [-2.0] * 5)


def test_lookups():
    model = _cycle_model()
    assert model.state_of(2).index == 2
    assert model.state_of(42) is None
    assert model.action_between(1, 3).index == 2
    assert model.action_between(0, 2) is None
    assert model.action_between(0, 42) is None
    assert model.has_actions(0)
    assert model.transition(3).target == 3


def test_state_without_actions():
    model = Model(['a', 'b'], [('a', 'b', -1.0)])
    assert not model.has_actions(1)
    assert model.states[1].incoming == (0,)
