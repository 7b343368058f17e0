import logging
import math
from typing import Hashable, List, Sequence, Tuple

import numpy
import numpy.random as rnd

from softmdp.config import SolverConfig
from softmdp.model import Model
from softmdp.priority_queue import PriorityQueue

logger = logging.getLogger(__name__)

NDArrayNumpy = numpy.ndarray


class ValueIterator:
    """
    Entropy-regularised value iteration on a deterministic `Model`.

    Solves the soft Bellman equations
        Q(s, a) = R(s, a) + V(next(s, a))
        V(s) = alpha * log(sum_a exp(Q(s, a) / alpha))    (alpha > 0)
        V(s) = max_a Q(s, a)                              (alpha = 0)
    by prioritized sweeping: states are re-backed-up in order of how much their
    successors changed, and the convergence threshold is annealed over several
    sweep-then-drain rounds.

    An instance owns its V, Q, policy and absorbing flags, so it must not be shared
    between threads. Many instances may plan on the same `Model` concurrently as long
    as its rewards are not rewritten meanwhile.
    """

    def __init__(self, model: Model, config: SolverConfig = SolverConfig()):
        self.model = model
        self.config = config
        self.V: NDArrayNumpy = numpy.zeros(model.num_states())
        self.Q: NDArrayNumpy = numpy.zeros(model.num_actions())
        self.policy: NDArrayNumpy = numpy.zeros(model.num_actions())
        self.is_absorbing: NDArrayNumpy = numpy.zeros(model.num_states(), dtype=bool)
        self.alpha: float = 0.0

    def __str__(self) -> str:
        return 'V: {}\nQ: {}\nPolicy: {}\n'.format(self.V, self.Q, self.policy)

    # --- Setup ---

    def set_absorbing_state(self, state_id: Hashable) -> bool:
        """
        Marks a state as terminal: its actions are ignored while planning.

        Returns:
            False if `state_id` is not a state of the model.
        """
        state = self.model.state_of(state_id)
        if state is None:
            return False
        self.is_absorbing[state.index] = True
        return True

    def set_alpha(self, alpha: float) -> None:
        self.alpha = alpha

    def init_absorbing_state(self) -> None:
        self.is_absorbing[:] = False

    def init(self) -> None:
        """Resets values, policy, absorbing flags and temperature for a new planning episode."""
        self.V.fill(0.0)
        self.Q.fill(0.0)
        self.policy.fill(0.0)
        self.init_absorbing_state()
        self.alpha = 0.0

    def usable_actions(self, state_index: int) -> Tuple[int, ...]:
        """Actions available for planning in a state; none if the state is absorbing."""
        if self.is_absorbing[state_index]:
            return ()
        return self.model.states[state_index].actions

    # --- Planning ---

    def run_value_iteration(self) -> NDArrayNumpy:
        """
        Runs prioritized sweeping until the soft Bellman residual is below
        `config.min_value_error` everywhere (or the iteration cap is hit).

        Returns:
            The state values V.
        """
        states = self.model.states
        actions = self.model.actions
        capacity = self.config.queue_capacity
        # Entries left when a round hits the iteration cap carry over to the next one.
        queue = PriorityQueue(len(states))
        for threshold in self.config.thresholds(self.config.min_value_error):
            for state in states:
                td_error = self._bellman_backup(state.index)
                if td_error > threshold and len(queue) < capacity:
                    queue.push(state.index, td_error)
            iterations = 0
            while iterations < self.config.max_iterations and len(queue) > 0:
                state_index, _ = queue.pop()
                for action_index in states[state_index].incoming:
                    source = actions[action_index].source
                    td_error = self._bellman_backup(source)
                    if td_error > threshold and len(queue) < capacity:
                        queue.push(source, td_error)
                iterations += 1
            logger.debug('Value iteration round done: threshold=%.6f, iterations=%d', threshold, iterations)
        return self.V

    def update_policy(self) -> NDArrayNumpy:
        """
        Computes the Boltzmann policy pi(a|s) proportional to exp(Q(s, a) / alpha) for
        every non-absorbing state with actions. With alpha = 0 the policy is greedy and
        the first maximising action wins ties.

        Returns:
            The per-action policy array.
        """
        for state in self.model.states:
            actions = self.usable_actions(state.index)
            if not actions:
                continue
            best = self._best_action(actions)
            if self.alpha == 0:
                for a in actions:
                    self.policy[a] = 0.0
                self.policy[best] = 1.0
            else:
                max_q = self.Q[best]
                z = 0.0
                for a in actions:
                    self.policy[a] = math.exp((self.Q[a] - max_q) / self.alpha)
                    z += self.policy[a]
                for a in actions:
                    self.policy[a] /= z
        return self.policy

    def _bellman_backup(self, state_index: int) -> float:
        """Backs up one state and returns the absolute change of its value (the TD error)."""
        actions = self.usable_actions(state_index)
        if not actions:
            return 0.0
        model_actions = self.model.actions
        rewards = self.model.rewards
        for a in actions:
            self.Q[a] = rewards[a] + self.V[model_actions[a].target]
        v = self._soft_maximum(actions)
        td_error = abs(v - self.V[state_index])
        self.V[state_index] = v
        return td_error

    def _soft_maximum(self, actions: Sequence[int]) -> float:
        if not actions:
            raise ValueError('Softmax over an empty action set; the model is malformed.')
        max_q = max(self.Q[a] for a in actions)
        if self.alpha == 0:
            return max_q
        lse = sum(math.exp((self.Q[a] - max_q) / self.alpha) for a in actions)
        return self.alpha * math.log(lse) + max_q

    def _best_action(self, actions: Sequence[int]) -> int:
        if not actions:
            raise ValueError('Argmax over an empty action set; the model is malformed.')
        best = actions[0]
        for a in actions[1:]:
            if self.Q[a] > self.Q[best]:
                best = a
        return best

    # --- Simulation ---

    def _sample_action(self, actions: Sequence[int]) -> int:
        """Inverse-CDF sample from the policy restricted to `actions`."""
        if not actions:
            raise ValueError('Sampling from an empty action set; the model is malformed.')
        r = rnd.random()
        cumulative = 0.0
        for a in actions[:-1]:
            cumulative += self.policy[a]
            if r < cumulative:
                return a
        return actions[-1]

    def generate_trajectory(self, start_id: Hashable, goal_id: Hashable, max_steps: int) -> Tuple[List[Hashable], bool]:
        """
        Rolls out the current policy from `start_id` until `goal_id` is reached.

        Args:
            start_id: Identity of the first state.
            goal_id: Identity of the state that ends the rollout successfully.
            max_steps: Maximum number of actions taken.

        Returns:
            The visited state identities (starting with `start_id`) and whether the goal
            was reached. On failure (step budget exhausted, dead end) the partial
            trajectory is returned; if either identity is unknown the trajectory is empty.
        """
        start = self.model.state_of(start_id)
        goal = self.model.state_of(goal_id)
        if start is None or goal is None:
            return [], False
        states = self.model.states
        state_index = start.index
        trajectory = [start.id]
        for _ in range(max_steps):
            actions = self.usable_actions(state_index)
            if not actions:
                return trajectory, False
            state_index = self.model.actions[self._sample_action(actions)].target
            trajectory.append(states[state_index].id)
            if state_index == goal.index:
                return trajectory, True
        return trajectory, False

    # --- Visitation frequencies ---

    def _incoming_visitation(self, state_index: int, action_dist: NDArrayNumpy) -> float:
        """Mass flowing into a state through actions of non-absorbing states."""
        actions = self.model.actions
        d = 0.0
        for a in self.model.states[state_index].incoming:
            if self.is_absorbing[actions[a].source]:
                continue
            d += action_dist[a]
        return d

    def _propagate(self, state_index: int, threshold: float, initial_state_dist: NDArrayNumpy,
                   state_dist: NDArrayNumpy, action_dist: NDArrayNumpy, queue: PriorityQueue) -> None:
        """Pushes a state's mass through its actions and schedules successors that changed."""
        actions = self.usable_actions(state_index)
        if not actions or state_dist[state_index] < threshold:
            return
        for a in actions:
            action_dist[a] = state_dist[state_index] * self.policy[a]
            target = self.model.actions[a].target
            previous = state_dist[target]
            state_dist[target] = initial_state_dist[target] + self._incoming_visitation(target, action_dist)
            change = abs(previous - state_dist[target])
            if change > threshold and len(queue) < self.config.queue_capacity:
                queue.push(target, change)

    def state_action_visitation(self, initial_state_dist: Sequence[float]) -> Tuple[NDArrayNumpy, NDArrayNumpy]:
        """
        Computes expected visitation frequencies of states and actions under the current
        policy, i.e. the fixed point of
            state_dist(s) = initial(s) + sum_{a -> s, source(a) not absorbing} action_dist(a)
            action_dist(a) = state_dist(source(a)) * policy(a)
        The frequencies are not normalised; with cycles they count repeated visits.

        Args:
            initial_state_dist: Initial state distribution, one entry per state.

        Returns:
            A tuple `(state_dist, action_dist)` of NumPy arrays.
        """
        initial_state_dist = numpy.asarray(initial_state_dist, dtype=numpy.float64)
        if initial_state_dist.shape != (self.model.num_states(),):
            raise ValueError(f'initial_state_dist must have shape ({self.model.num_states()},), '
                             f'got {initial_state_dist.shape}')
        num_states = self.model.num_states()
        state_dist = initial_state_dist.copy()
        action_dist = numpy.zeros(self.model.num_actions())
        args = (initial_state_dist, state_dist, action_dist)

        thresholds = self.config.thresholds(self.config.min_state_dist_error)
        queue = PriorityQueue(num_states)
        for round_index, threshold in enumerate(thresholds):
            if round_index == 0:
                for state_index in numpy.flatnonzero(initial_state_dist > 0):
                    queue.push(int(state_index), float(initial_state_dist[state_index]))
            else:
                for state_index in range(num_states):
                    self._propagate(state_index, threshold, *args, queue)
            iterations = 0
            while iterations < self.config.max_iterations and len(queue) > 0:
                state_index, _ = queue.pop()
                self._propagate(state_index, threshold, *args, queue)
                iterations += 1
            logger.debug('Visitation round done: threshold=%.6f, iterations=%d', threshold, iterations)
        return state_dist, action_dist
