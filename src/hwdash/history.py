"""Fixed-capacity rolling history for sparkline rendering."""

from collections import deque


class HistoryBuffer:
    """
    Keeps the most recent ``max_points`` values in insertion order.

    Pushing onto a full buffer evicts the oldest value.
    """

    def __init__(self, max_points: int = 60) -> None:
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        self._values: deque[float] = deque(maxlen=max_points)

    @property
    def max_points(self) -> int:
        """Get the buffer capacity."""
        return self._values.maxlen or 0

    def push(self, value: float) -> None:
        """Append a value, evicting the oldest one when full."""
        self._values.append(value)

    def snapshot(self) -> list[float]:
        """Return a copy of the buffered values, oldest first."""
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)
