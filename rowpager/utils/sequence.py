import itertools


class NumberSequence:
    """Monotonically increasing counter used to stamp page accesses."""

    def __init__(self, start: int = 0):
        self._counter = itertools.count(start)
        self._last = start - 1

    def next(self) -> int:
        self._last = next(self._counter)
        return self._last

    def peek(self) -> int:
        """Return the last value handed out without advancing."""
        return self._last
