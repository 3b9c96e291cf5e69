"""Fixed-length sample history backing the CPU sparkline."""

from __future__ import annotations

from collections import deque


class HistoryBuffer:
    """Ring of the most recent *capacity* samples, oldest first.

    The buffer starts full of zeros so its length never changes; every push
    evicts the oldest sample. Values are stored as given (multi-core
    aggregates may briefly exceed 100).
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"history capacity must be >= 1, got {capacity}")
        self._values: deque[float] = deque([0.0] * capacity, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        self._values.append(value)

    def as_sequence(self) -> tuple[float, ...]:
        return tuple(self._values)

    def latest(self) -> float:
        return self._values[-1]

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self):
        return iter(self.as_sequence())
