from typing import Union, Sequence

import jax.numpy as jnp
import numpy.random as rnd
import numpy

# --- Type Definitions ---
NDArrayJax = jnp.ndarray
NDArrayNumpy = numpy.ndarray
ArrayLike = Union[NDArrayJax, NDArrayNumpy, Sequence[float]]


# --- Vector Utilities ---

def onehot(index: int, num_classes: int) -> NDArrayJax:
    """
    Creates a one-hot encoded vector, e.g. a point-mass initial state distribution.

    Args:
        index: The index to be set to 1.
        num_classes: The total number of classes (length of the one-hot vector).

    Returns:
        A JAX array representing the one-hot vector of shape (num_classes,).
    """
    if not 0 <= index < num_classes:
        raise IndexError(f'index {index} out of range for {num_classes} classes')
    return jnp.eye(num_classes, dtype=jnp.float32)[index]

def l1_normalize(vector: ArrayLike) -> NDArrayJax:
    """
    Rescales a vector so that its entries sum to one.
    Unlike an L2 normalisation the sign of the sum is kept, so a vector of
    positive weights stays on the probability simplex.

    Args:
        vector: Input vector.

    Returns:
        `vector / sum(vector)` as a JAX array.
    """
    vector = jnp.asarray(vector)
    return vector / jnp.sum(vector)

def clip(vector: ArrayLike, bound: float) -> NDArrayJax:
    """
    Clips every entry of `vector` into `[-bound, bound]`.
    """
    return jnp.clip(jnp.asarray(vector), -bound, bound)

def cosine_similarity(x: ArrayLike, y: ArrayLike) -> float:
    """
    Cosine of the angle between two vectors.

    Args:
        x: First vector.
        y: Second vector, same length as `x`.

    Returns:
        `x.y / (|x| |y|)`. 1 means the vectors point the same way.
        NaN if either vector is zero.
    """
    x, y = jnp.asarray(x), jnp.asarray(y)
    return float(jnp.dot(x, y) / jnp.linalg.norm(x) / jnp.linalg.norm(y))

def angular_distance(x: ArrayLike, y: ArrayLike) -> float:
    """
    Angle in radians between two vectors. Scale invariant, so it compares
    reward weights that are only identified up to a positive factor.
    """
    return float(jnp.arccos(jnp.clip(cosine_similarity(x, y), -1.0, 1.0)))

def mean_squared_error(y_true: ArrayLike, y_pred: ArrayLike) -> float:
    diff = jnp.asarray(y_true) - jnp.asarray(y_pred)
    return float(jnp.mean(diff * diff))

def rnd_simplex(dimension: int) -> NDArrayNumpy:
    """
    Samples a point uniformly from the (dimension-1)-simplex, i.e. a positive
    weight vector whose entries sum to one.

    Args:
        dimension: The number of entries.

    Returns:
        A NumPy array of shape (dimension,).
    """
    # Normalised exponential samples are uniform on the simplex.
    samples: NDArrayNumpy = rnd.exponential(size=dimension)
    return samples / samples.sum()
