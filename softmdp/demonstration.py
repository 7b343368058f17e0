import abc
import collections
import logging
import typing
from typing import Dict, Hashable, Iterable, List, Sequence

import numpy

from softmdp.model import Model
from softmdp.value_iterator import ValueIterator

logger = logging.getLogger(__name__)

NDArrayNumpy = numpy.ndarray


class InitialState(typing.NamedTuple):
    """How many demonstrations start in a state."""
    id: Hashable
    count: int


class TransitionVisitation(typing.NamedTuple):
    """How often demonstrations move from one state to another."""
    from_id: Hashable
    to_id: Hashable
    count: int


class DemonstrationLoader(abc.ABC):
    """
    Source of expert demonstration counts for a goal. Implementations may read from
    any store; failures to access it should be raised and are propagated by
    `Demonstration.from_loader`.
    """

    @abc.abstractmethod
    def load_initial_state(self, goal_id: Hashable) -> List[InitialState]:
        raise NotImplementedError

    @abc.abstractmethod
    def load_transition_visitation(self, goal_id: Hashable) -> List[TransitionVisitation]:
        raise NotImplementedError


class PolicyDemonstrationLoader(DemonstrationLoader):
    """
    Expert loader that samples demonstrations from a planned policy.

    The given `ValueIterator` must already have run value iteration and
    `update_policy` with the goal marked absorbing.
    """

    def __init__(self, value_iterator: ValueIterator, max_steps: int):
        self.value_iterator = value_iterator
        self.max_steps = max_steps
        self.initial_states: Dict[Hashable, List[InitialState]] = collections.defaultdict(list)

    def set_initial_state(self, goal_id: Hashable, state_id: Hashable, count: int) -> None:
        self.initial_states[goal_id].append(InitialState(state_id, count))

    def load_initial_state(self, goal_id: Hashable) -> List[InitialState]:
        return list(self.initial_states.get(goal_id, []))

    def load_transition_visitation(self, goal_id: Hashable) -> List[TransitionVisitation]:
        counts: typing.Counter = collections.Counter()
        for start in self.initial_states.get(goal_id, []):
            for _ in range(start.count):
                trajectory, ok = self.value_iterator.generate_trajectory(start.id, goal_id, self.max_steps)
                if not ok:
                    logger.warning('Unable to reach the goal %r from %r', goal_id, start.id)
                    continue
                counts.update(zip(trajectory[:-1], trajectory[1:]))
        return [TransitionVisitation(from_id, to_id, count) for (from_id, to_id), count in counts.items()]


def _frozen(array: NDArrayNumpy) -> NDArrayNumpy:
    array.flags.writeable = False
    return array


class Demonstration(typing.NamedTuple):
    """
    Expert behaviour towards one goal, summarised as visitation frequencies.

    Attributes:
        goal_id (Hashable): The goal the expert was heading for.
        initial_state_dist (NDArrayNumpy): Fraction of demonstrations starting in each state.
        action_dist (NDArrayNumpy): Expected number of times each action is taken per demonstration.
        num_samples (int): Number of demonstrations the frequencies were computed from.
    """
    goal_id: Hashable
    initial_state_dist: NDArrayNumpy
    action_dist: NDArrayNumpy
    num_samples: int

    @classmethod
    def _normalized(cls, goal_id: Hashable, initial_state_dist: NDArrayNumpy,
                    action_dist: NDArrayNumpy, num_samples: int) -> 'Demonstration':
        if num_samples <= 0:
            raise ValueError(f'No demonstration samples for goal {goal_id!r}.')
        return cls(
            goal_id=goal_id,
            initial_state_dist=_frozen(initial_state_dist / num_samples),
            action_dist=_frozen(action_dist / num_samples),
            num_samples=num_samples,
        )

    @classmethod
    def from_trajectories(cls, model: Model, goal_id: Hashable,
                          trajectories: Iterable[Sequence[Hashable]]) -> 'Demonstration':
        """
        Builds a demonstration from sampled state sequences.

        Args:
            model: The model the trajectories were sampled in.
            goal_id: The goal of the trajectories.
            trajectories: Sequences of state identities. Empty sequences are ignored.

        Returns:
            A `Demonstration`. The first state of every trajectory counts towards the
            initial distribution and each consecutive pair towards the matching action.
            Trajectories starting in a state unknown to the model are skipped whole,
            unknown moves inside a trajectory one by one.
        """
        initial_state_dist = numpy.zeros(model.num_states())
        action_dist = numpy.zeros(model.num_actions())
        num_samples = 0
        skipped = 0
        for trajectory in trajectories:
            if len(trajectory) == 0:
                continue
            start = model.state_of(trajectory[0])
            if start is None:
                skipped += 1
                continue
            num_samples += 1
            initial_state_dist[start.index] += 1
            for from_id, to_id in zip(trajectory[:-1], trajectory[1:]):
                action = model.action_between(from_id, to_id)
                if action is None:
                    skipped += 1
                    continue
                action_dist[action.index] += 1
        if skipped:
            logger.debug('Skipped %d unknown entries in demonstrations for goal %r', skipped, goal_id)
        return cls._normalized(goal_id, initial_state_dist, action_dist, num_samples)

    @classmethod
    def from_loader(cls, model: Model, goal_id: Hashable, loader: DemonstrationLoader) -> 'Demonstration':
        """
        Builds a demonstration from the counts provided by `loader`.
        The sample count is the total of the initial state counts.
        """
        initial_states = loader.load_initial_state(goal_id)
        transitions = loader.load_transition_visitation(goal_id)

        initial_state_dist = numpy.zeros(model.num_states())
        num_samples = 0
        skipped = 0
        for initial in initial_states:
            state = model.state_of(initial.id)
            if state is None:
                skipped += 1
                continue
            initial_state_dist[state.index] += initial.count
            num_samples += initial.count

        action_dist = numpy.zeros(model.num_actions())
        for transition in transitions:
            action = model.action_between(transition.from_id, transition.to_id)
            if action is None:
                skipped += 1
                continue
            action_dist[action.index] += transition.count
        if skipped:
            logger.debug('Skipped %d unknown entries in demonstrations for goal %r', skipped, goal_id)
        return cls._normalized(goal_id, initial_state_dist, action_dist, num_samples)
