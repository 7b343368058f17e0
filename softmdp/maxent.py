import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

import jax.numpy as jnp
import numpy
import numpy.random as rnd
from tqdm import tqdm

import softmdp.utils as utils
from softmdp.config import TrainerConfig
from softmdp.demonstration import Demonstration
from softmdp.model import Model
from softmdp.value_iterator import ValueIterator

logger = logging.getLogger(__name__)

NDArrayJax = jnp.ndarray


class Feature:
    """
    Immutable action-feature matrix, one row per action of a `Model`.
    """

    def __init__(self, values: utils.ArrayLike):
        values = jnp.asarray(values, dtype=jnp.float32)
        if values.ndim != 2:
            raise ValueError(f'Feature values must be a 2D (actions, features) matrix, got shape {values.shape}')
        self.values: NDArrayJax = values

    @classmethod
    def random(cls, num_actions: int, num_features: int) -> 'Feature':
        """Features drawn uniformly from [0, 1)."""
        return cls(rnd.random((num_actions, num_features)))

    @property
    def num_actions(self) -> int:
        return self.values.shape[0]

    @property
    def num_features(self) -> int:
        return self.values.shape[1]

    def vector(self, action_index: int) -> NDArrayJax:
        return self.values[action_index]

    def expectation(self, action_dist: utils.ArrayLike) -> NDArrayJax:
        """
        Feature expectation sum_a action_dist(a) * feature(a).

        Args:
            action_dist: Visitation frequency of every action.

        Returns:
            A JAX array of shape (num_features,).
        """
        return jnp.dot(jnp.asarray(action_dist, dtype=jnp.float32), self.values)


class LinearRewardTrainer:
    """
    Maximum Entropy IRL with a linear reward.

    Each action costs `theta . feature(a)` (plus an optional per-action offset), so
    the model's rewards are `-theta . feature(a)`. `fit` moves theta along the
    log-likelihood gradient, the difference between the expert's feature expectation
    and the one induced by planning under the current reward.
    """

    def __init__(self, model: Model, feature: Feature, unique_cost: bool = False,
                 config: TrainerConfig = TrainerConfig()):
        """
        Args:
            model: Model whose rewards are rewritten by the trainer.
            feature: One feature row per action of `model`.
            unique_cost: Also fit a per-action cost offset.
            config: Trainer settings.
        """
        if feature.num_actions != model.num_actions():
            raise ValueError(f'Feature has {feature.num_actions} rows but the model has '
                             f'{model.num_actions()} actions.')
        self.model = model
        self.feature = feature
        self.config = config
        self.theta: NDArrayJax = jnp.full(feature.num_features, 1.0 / feature.num_features)
        self.unique_cost: Optional[NDArrayJax] = None
        if unique_cost:
            self.unique_cost = jnp.full(model.num_actions(), config.initial_unique_cost / model.num_actions())

    # --- Reward ---

    def compute_cost(self) -> NDArrayJax:
        """
        Per-action rewards induced by the current weights: `-theta . feature(a)`, and
        with the offset term `min(0, -theta . feature(a) - unique_cost(a))` so that
        rewards stay non-positive costs.
        """
        cost = -jnp.dot(self.feature.values, self.theta)
        if self.unique_cost is not None:
            cost = jnp.minimum(0.0, cost - self.unique_cost)
        return cost

    def update_reward(self) -> None:
        """Writes the rewards of the current weights into the model."""
        self.model.update_reward(numpy.asarray(self.compute_cost(), dtype=numpy.float64))

    def _planner(self, value_iterator: ValueIterator, demo: Demonstration) -> ValueIterator:
        value_iterator.init()
        value_iterator.set_alpha(self.config.alpha)
        value_iterator.set_absorbing_state(demo.goal_id)
        value_iterator.run_value_iteration()
        value_iterator.update_policy()
        return value_iterator

    # --- Gradient ---

    def feature_expectation_difference(self, value_iterator: ValueIterator,
                                       demo: Demonstration) -> Tuple[NDArrayJax, Optional[NDArrayJax]]:
        """
        Re-plans under the model's current rewards towards the demonstration's goal and
        compares the induced behaviour with the expert's.

        Args:
            value_iterator: Planner used (and reset) for this estimate.
            demo: Expert demonstration.

        Returns:
            `(expert_fe - model_fe, offset_gradient)` where `offset_gradient` is the
            difference of the action visitation frequencies, or None when no offset
            term is fit.
        """
        self._planner(value_iterator, demo)
        _, action_dist = value_iterator.state_action_visitation(demo.initial_state_dist)
        grad = self.feature.expectation(demo.action_dist) - self.feature.expectation(action_dist)
        if self.unique_cost is None:
            return grad, None
        return grad, jnp.asarray(demo.action_dist - action_dist, dtype=jnp.float32)

    # --- Updates ---

    def exponentiated_gradient_ascent(self, grad: utils.ArrayLike, step_size: float) -> None:
        """Multiplicative update that keeps theta positive and summing to one."""
        factor = utils.clip(jnp.exp(-step_size * jnp.asarray(grad)), self.config.gradient_clip)
        self.theta = utils.l1_normalize(self.theta * factor)

    def gradient_ascent(self, grad: utils.ArrayLike, unique_grad: Optional[utils.ArrayLike],
                        step_size: float) -> None:
        """Additive update of theta and of the offset term, rescaled by the updated theta's sum."""
        bound = self.config.gradient_clip
        theta = self.theta + utils.clip(-step_size * jnp.asarray(grad), bound)
        z = jnp.sum(theta)
        self.theta = theta / z
        if unique_grad is not None and self.unique_cost is not None:
            self.unique_cost = (self.unique_cost + utils.clip(-step_size * jnp.asarray(unique_grad), bound)) / z

    # --- Training ---

    def fit(self, demonstrations: Sequence[Demonstration], num_epochs: int, parallelism: int,
            step_size: float, verbose: bool = False) -> List[float]:
        """
        Fits theta (and the offset term) to the demonstrations.

        Every epoch runs `parallelism` workers concurrently. Each samples a
        demonstration uniformly with replacement, plans with its own `ValueIterator`
        and adds its gradient to a shared, lock-protected sum. Once all workers have
        joined, the weights are updated and the model's rewards rewritten, so the
        next epoch plans under the new reward.

        Args:
            demonstrations: Expert demonstrations.
            num_epochs: Number of updates.
            parallelism: Number of gradient estimates (and worker threads) per epoch.
            step_size: Initial step size, decayed by `config.gradient_decay` every epoch.
            verbose: Show a progress bar.

        Returns:
            The L2 norm of the summed gradient of every epoch.
        """
        if not demonstrations:
            raise ValueError('fit needs at least one demonstration.')
        if parallelism < 1:
            raise ValueError(f'parallelism must be positive, got {parallelism}')

        planners = [ValueIterator(self.model, self.config.solver) for _ in range(parallelism)]
        lock = threading.Lock()
        step_size /= parallelism
        history: List[float] = []
        self.update_reward()

        with ThreadPoolExecutor(max_workers=parallelism) as executor:
            for epoch in tqdm(range(num_epochs), disable=not verbose):
                grad_sum = jnp.zeros(self.feature.num_features)
                unique_grad_sum = None if self.unique_cost is None else jnp.zeros(self.model.num_actions())

                def worker(value_iterator: ValueIterator, demo: Demonstration) -> None:
                    nonlocal grad_sum, unique_grad_sum
                    grad, unique_grad = self.feature_expectation_difference(value_iterator, demo)
                    with lock:
                        grad_sum = grad_sum + grad
                        if unique_grad_sum is not None:
                            unique_grad_sum = unique_grad_sum + unique_grad

                futures = [
                    executor.submit(worker, planner, demonstrations[rnd.randint(len(demonstrations))])
                    for planner in planners
                ]
                # Epoch barrier: the rewards may only change once every worker is done reading them.
                for future in futures:
                    future.result()

                if self.unique_cost is None:
                    self.exponentiated_gradient_ascent(grad_sum, step_size)
                else:
                    self.gradient_ascent(grad_sum, unique_grad_sum, step_size)
                self.update_reward()

                grad_norm = float(jnp.linalg.norm(grad_sum))
                history.append(grad_norm)
                logger.info('Epoch %d: step_size=%.4f, grad_norm=%.4f, theta=%s',
                            epoch, step_size, grad_norm, numpy.asarray(self.theta))
                step_size *= self.config.gradient_decay
        return history

    def eval_action_dist(self, demo: Demonstration) -> float:
        """
        Cosine similarity between the action visitation induced by the current reward
        and the demonstrated one (1 is a perfect match).
        """
        value_iterator = self._planner(ValueIterator(self.model, self.config.solver), demo)
        _, action_dist = value_iterator.state_action_visitation(demo.initial_state_dist)
        return utils.cosine_similarity(action_dist, demo.action_dist)
