"""
Recover the reward weights of a grid world from expert demonstrations.
The expert plans with a soft policy under a random true theta; trainers
fit for an increasing number of epochs and we plot how far their weights
are from the true ones.
"""
import logging

import numpy as np
import numpy.random as rnd
import matplotlib.pyplot as plt

import softmdp.utils as utils
from softmdp.config import TrainerConfig
from softmdp.demonstration import Demonstration, PolicyDemonstrationLoader
from softmdp.grid import build_grid_world
from softmdp.maxent import LinearRewardTrainer
from softmdp.value_iterator import ValueIterator

def expert_demonstration(vi, grid, goal, starts, n_samples, alpha, max_steps=1000):
    goal_id = grid.state_id_of(*goal)
    vi.init()
    vi.set_alpha(alpha)
    vi.set_absorbing_state(goal_id)
    vi.run_value_iteration()
    vi.update_policy()
    loader = PolicyDemonstrationLoader(vi, max_steps)
    for xy in starts:
        loader.set_initial_state(goal_id, grid.state_id_of(*xy), n_samples)
    return Demonstration.from_loader(grid.model, goal_id, loader)

def train(feature, demos, width, height, n_epochs, parallelism, step_size):
    grid = build_grid_world(width, height)
    trainer = LinearRewardTrainer(grid.model, feature, config=TrainerConfig())
    trainer.fit(demos, n_epochs, parallelism, step_size)
    return trainer

if __name__ == '__main__':
    logging.basicConfig(level=logging.WARNING)
    rnd.seed(0)
    width, height = 10, 10
    n_features, n_samples = 5, 50
    alpha = 0.01

    grid = build_grid_world(width, height)
    feature = grid.random_feature(n_features)
    expert = LinearRewardTrainer(grid.model, feature)
    expert.theta = utils.l1_normalize(utils.rnd_simplex(n_features))
    expert.update_reward()
    print('True theta: {}'.format(np.asarray(expert.theta)))

    vi = ValueIterator(grid.model)
    goals = [(width // 2, height // 2), (width // 2, 0), (0, height // 2), (width - 1, height // 2)]
    starts = [(0, 0), (0, height - 1), (width - 1, height - 1), (width - 1, 0)]
    demos = [expert_demonstration(vi, grid, goal, starts, n_samples, alpha) for goal in goals]

    epochs = [1, 5, 10, 20, 40]
    distances, scores, errors = [], [], []
    for n_epochs in epochs:
        rnd.seed(1)
        trainer = train(feature, demos, width, height, n_epochs, parallelism=4, step_size=0.5)
        distances.append(utils.angular_distance(trainer.theta, expert.theta))
        scores.append(np.mean([trainer.eval_action_dist(demo) for demo in demos]))
        errors.append(utils.mean_squared_error(expert.compute_cost(), trainer.compute_cost()))
        print('epochs: {}, angle: {:.4f}, action dist: {:.4f}, cost mse: {:.4f}'.format(
            n_epochs, distances[-1], scores[-1], errors[-1]))

    plt.figure(figsize=(10, 4))
    plt.subplot(1, 2, 1)
    plt.plot(epochs, distances, marker='o')
    plt.xlabel('epochs')
    plt.ylabel('angle(theta, true theta)')
    plt.subplot(1, 2, 2)
    plt.plot(epochs, scores, marker='o')
    plt.xlabel('epochs')
    plt.ylabel('cosine similarity of action visitation')
    plt.tight_layout()
    plt.show()
