import numpy as np
import numpy.random as rnd

from softmdp.grid import build_grid_world


def test_grid_world_topology():
    grid = build_grid_world(3, 2)
    model = grid.model
    assert model.num_states() == 6
    # Horizontal moves: 2 * (3 - 1) * 2 rows, vertical: 2 * (2 - 1) * 3 columns
    assert model.num_actions() == 8 + 6
    np.testing.assert_array_equal(model.rewards, -1.0)
    # Corner (0, 0) can only move +x and +y, in that order
    corner = model.state_of(grid.state_id_of(0, 0))
    targets = [model.states[model.actions[a].target].id for a in corner.actions]
    assert targets == [grid.state_id_of(1, 0), grid.state_id_of(0, 1)]


def test_grid_world_coordinates():
    grid = build_grid_world(4, 3)
    assert grid.state_id_of(2, 1) == 2 * 3 + 1
    assert grid.coordinate_of(7) == (2, 1)
    assert grid.state_id_of(4, 0) is None
    assert grid.state_id_of(0, -1) is None
    assert grid.coordinate_of(12) is None


def test_grid_world_cost_and_features():
    rnd.seed(0)
    grid = build_grid_world(2, 2, cost=2.5)
    np.testing.assert_array_equal(grid.model.rewards, -2.5)
    feature = grid.random_feature(4)
    assert feature.num_actions == grid.model.num_actions()
    assert feature.num_features == 4
