from __future__ import annotations

import threading


class CountDownError(RuntimeError):
    """Raised when a tracker is counted down more often than its target."""


class CompletionTracker:
    """Count-down latch released once every triggered work tree has finished."""

    def __init__(self, count: int) -> None:
        if count < 0:
            raise ValueError("CompletionTracker count must be >= 0")
        self._count = count
        self._condition = threading.Condition()

    @property
    def count(self) -> int:
        with self._condition:
            return self._count

    def count_down(self) -> int:
        with self._condition:
            if self._count == 0:
                raise CountDownError("count_down called after the tracker reached zero")
            self._count -= 1
            if self._count == 0:
                self._condition.notify_all()
            return self._count

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the count reaches zero.

        Waits forever unless ``timeout`` is given; returns whether the tracker
        was released.
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._count == 0, timeout=timeout)
