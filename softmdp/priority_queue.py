from typing import List, Tuple


class EmptyQueueError(IndexError):
    pass


class PriorityQueue:
    """
    Max-heap over the fixed index domain `[0, size)`.

    Every index is either absent or queued exactly once. Pushing an index that is
    already queued raises its priority to the larger of the two values in place,
    so a queued priority never decreases.
    """

    def __init__(self, size: int):
        self._heap: List[int] = []
        self._priority: List[float] = [0.0] * size
        self._position: List[int] = [-1] * size  # -1 while absent

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, index: int) -> bool:
        return self._position[index] >= 0

    def size(self) -> int:
        return len(self._heap)

    def push(self, index: int, priority: float) -> None:
        if not 0 <= index < len(self._position):
            raise IndexError(f'index {index} out of range for a queue of size {len(self._position)}')
        position = self._position[index]
        if position < 0:
            self._priority[index] = priority
            self._position[index] = len(self._heap)
            self._heap.append(index)
            self._sift_up(len(self._heap) - 1)
        elif self._priority[index] < priority:
            self._priority[index] = priority
            self._sift_up(position)

    def pop(self) -> Tuple[int, float]:
        """
        Removes the index with the highest priority.

        Returns:
            `(index, priority)`.

        Raises:
            EmptyQueueError: If nothing is queued.
        """
        if not self._heap:
            raise EmptyQueueError('pop from an empty priority queue')
        top = self._heap[0]
        last = self._heap.pop()
        if self._heap:
            self._heap[0] = last
            self._position[last] = 0
            self._sift_down(0)
        self._position[top] = -1
        return top, self._priority[top]

    def _swap(self, i: int, j: int) -> None:
        heap = self._heap
        heap[i], heap[j] = heap[j], heap[i]
        self._position[heap[i]] = i
        self._position[heap[j]] = j

    def _sift_up(self, i: int) -> None:
        priority = self._priority
        while i > 0:
            parent = (i - 1) // 2
            if priority[self._heap[parent]] >= priority[self._heap[i]]:
                break
            self._swap(i, parent)
            i = parent

    def _sift_down(self, i: int) -> None:
        heap, priority = self._heap, self._priority
        n = len(heap)
        while True:
            largest = i
            for child in (2 * i + 1, 2 * i + 2):
                if child < n and priority[heap[child]] > priority[heap[largest]]:
                    largest = child
            if largest == i:
                return
            self._swap(i, largest)
            i = largest
