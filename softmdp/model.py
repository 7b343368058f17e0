import logging
import typing
from typing import Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy

logger = logging.getLogger(__name__)


class Edge(typing.NamedTuple):
    """A directed state-to-state transition used to build a `Model`."""
    from_id: Hashable
    to_id: Hashable
    reward: float


class State(typing.NamedTuple):
    """
    A state of a `Model`.

    Attributes:
        id (Hashable): External identity of the state.
        index (int): Position of the state in `Model.states`.
        actions (Tuple[int, ...]): Indices of the actions leaving the state.
        incoming (Tuple[int, ...]): Indices of the actions (transitions) entering the state.
    """
    id: Hashable
    index: int
    actions: Tuple[int, ...]
    incoming: Tuple[int, ...]


class Action(typing.NamedTuple):
    """
    An action of a deterministic `Model`. Each action owns exactly one transition,
    which shares the action's index.

    Attributes:
        index (int): Position of the action in `Model.actions`.
        source (int): Index of the state the action leaves.
        target (int): Index of the state the action leads to.
    """
    index: int
    source: int
    target: int


class Transition(typing.NamedTuple):
    """Snapshot of the transition owned by an action."""
    action: int
    target: int
    reward: float


class Model:
    """
    Deterministic MDP graph stored as flat index arenas.

    The topology (states, actions, transitions) is fixed at construction and can be
    read from any number of threads. The per-action rewards in `rewards` are the only
    mutable part; they must not be rewritten while a planner is reading them.
    """

    def __init__(self, state_ids: Iterable[Hashable], edges: Iterable[Sequence]):
        """
        Args:
            state_ids: Identities of the states, in index order. Duplicates are ignored.
            edges: `Edge`s or `(from_id, to_id, reward)` tuples. Edges referring to
                   unknown identities are dropped; parallel edges become distinct actions.
        """
        self.index_of: Dict[Hashable, int] = {}
        ids: List[Hashable] = []
        for state_id in state_ids:
            if state_id in self.index_of:
                continue
            self.index_of[state_id] = len(ids)
            ids.append(state_id)

        outgoing: List[List[int]] = [[] for _ in ids]
        incoming: List[List[int]] = [[] for _ in ids]
        actions: List[Action] = []
        rewards: List[float] = []
        self.num_dropped_edges = 0
        for from_id, to_id, reward in edges:
            source = self.index_of.get(from_id)
            target = self.index_of.get(to_id)
            if source is None or target is None:
                self.num_dropped_edges += 1
                continue
            action = Action(index=len(actions), source=source, target=target)
            actions.append(action)
            rewards.append(reward)
            outgoing[source].append(action.index)
            incoming[target].append(action.index)

        if self.num_dropped_edges:
            logger.warning('Dropped %d edges referring to unknown states', self.num_dropped_edges)

        self.states: List[State] = [
            State(id=state_id, index=i, actions=tuple(outgoing[i]), incoming=tuple(incoming[i]))
            for i, state_id in enumerate(ids)
        ]
        self.actions: List[Action] = actions
        self.rewards: numpy.ndarray = numpy.array(rewards, dtype=numpy.float64)

    def __repr__(self) -> str:
        return f'Model(num_states={self.num_states()}, num_actions={self.num_actions()})'

    def num_states(self) -> int:
        return len(self.states)

    def num_actions(self) -> int:
        return len(self.actions)

    def state_of(self, state_id: Hashable) -> Optional[State]:
        index = self.index_of.get(state_id)
        if index is None:
            return None
        return self.states[index]

    def has_actions(self, state_index: int) -> bool:
        return len(self.states[state_index].actions) > 0

    def transition(self, action_index: int) -> Transition:
        action = self.actions[action_index]
        return Transition(action=action.index, target=action.target, reward=float(self.rewards[action.index]))

    def set_reward(self, action_index: int, value: float) -> bool:
        """
        Sets the reward of one action.

        Returns:
            False, leaving every reward untouched, if `action_index` is out of range.
        """
        if not 0 <= action_index < self.num_actions():
            return False
        self.rewards[action_index] = value
        return True

    def update_reward(self, rewards: Sequence[float]) -> bool:
        """
        Replaces the reward of every action.

        Returns:
            False, leaving every reward untouched, if `rewards` does not have one
            entry per action.
        """
        if len(rewards) != self.num_actions():
            return False
        self.rewards[:] = numpy.asarray(rewards, dtype=numpy.float64)
        return True

    def action_between(self, from_id: Hashable, to_id: Hashable) -> Optional[Action]:
        """
        Finds an action leading from `from_id` to `to_id`.
        The first matching action wins when the states are joined by parallel edges.
        """
        source = self.state_of(from_id)
        target = self.state_of(to_id)
        if source is None or target is None:
            return None
        for action_index in source.actions:
            action = self.actions[action_index]
            if action.target == target.index:
                return action
        return None
