from typing import List, Optional, Tuple

from softmdp.maxent import Feature
from softmdp.model import Edge, Model

# Moves in the order their actions are created: +x, -x, +y, -y.
MOVES: Tuple[Tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


class GridWorld:
    """
    A width x height 4-connected grid. Cell (x, y) has state id `x * height + y`
    and every move between neighbouring cells costs `cost`.
    """

    def __init__(self, width: int, height: int, cost: float = 1.0):
        self.width = width
        self.height = height
        state_ids: List[int] = []
        edges: List[Edge] = []
        for x in range(width):
            for y in range(height):
                state_id = self.state_id_of(x, y)
                state_ids.append(state_id)
                for dx, dy in MOVES:
                    to_id = self.state_id_of(x + dx, y + dy)
                    if to_id is None:
                        continue
                    edges.append(Edge(state_id, to_id, -cost))
        self.model = Model(state_ids, edges)

    def state_id_of(self, x: int, y: int) -> Optional[int]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        return x * self.height + y

    def coordinate_of(self, state_id: int) -> Optional[Tuple[int, int]]:
        if not 0 <= state_id < self.width * self.height:
            return None
        return state_id // self.height, state_id % self.height

    def random_feature(self, num_features: int) -> Feature:
        return Feature.random(self.model.num_actions(), num_features)


def build_grid_world(width: int, height: int, cost: float = 1.0) -> GridWorld:
    return GridWorld(width, height, cost)
