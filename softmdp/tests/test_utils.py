import pytest
import jax.numpy as jnp
import numpy.random as rnd # For generating random numbers (standard NumPy)
import numpy as np # For np.testing and some array creations for expected values.

from softmdp.utils import (
    onehot,
    l1_normalize,
    clip,
    cosine_similarity,
    angular_distance,
    mean_squared_error,
    rnd_simplex,
)
from softmdp.config import SolverConfig

# --- Tests for Vector Utilities ---

def test_onehot():
    assert jnp.array_equal(onehot(0, 3), jnp.array([1., 0., 0.]))
    assert jnp.array_equal(onehot(2, 3), jnp.array([0., 0., 1.]))
    with pytest.raises(IndexError):
        onehot(3, 3)

def test_l1_normalize():
    x = jnp.array([1.0, 3.0])
    np.testing.assert_allclose(l1_normalize(x), jnp.array([0.25, 0.75]))
    # Works on plain sequences too
    np.testing.assert_allclose(jnp.sum(l1_normalize([2.0, 2.0, 4.0])), 1.0, rtol=1e-6)

def test_clip():
    x = jnp.array([-5.0, -1.0, 0.5, 4.0])
    np.testing.assert_allclose(clip(x, 3.0), jnp.array([-3.0, -1.0, 0.5, 3.0]))

def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [2.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

def test_angular_distance():
    assert angular_distance([1.0, 0.0], [0.0, 3.0]) == pytest.approx(np.pi / 2, rel=1e-5)
    # Scale invariant
    assert angular_distance([1.0, 2.0], [2.0, 4.0]) == pytest.approx(0.0, abs=1e-3)

def test_mean_squared_error():
    assert mean_squared_error([1.0, 2.0], [1.0, 4.0]) == pytest.approx(2.0)

def test_rnd_simplex():
    rnd.seed(0)
    for dim in [1, 2, 5, 10]:
        simplex_point = rnd_simplex(dim)
        assert simplex_point.shape == (dim,)
        np.testing.assert_allclose(np.sum(simplex_point), 1.0, atol=1e-6)
        assert np.all(simplex_point >= 0)

# --- Tests for Configuration ---

def test_solver_config_thresholds():
    config = SolverConfig()
    thresholds = config.thresholds(config.min_value_error)
    assert len(thresholds) == 7
    np.testing.assert_allclose(thresholds[0], 0.001 * 2 ** 6)
    np.testing.assert_allclose(thresholds[-1], 0.001)
    # Halved every round
    np.testing.assert_allclose(np.array(thresholds[1:]) * 2, np.array(thresholds[:-1]))
