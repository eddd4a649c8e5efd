"""Run-scoped cancellation."""

from __future__ import annotations

import threading


class CancellationToken:
    """Shared flag every worker checks; also the workers' sleep primitive.

    Waiting on the token instead of ``time.sleep`` lets a cancel wake up
    every backoff and poll wait immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds. True if cancelled meanwhile."""
        if timeout <= 0:
            return self._event.is_set()
        return self._event.wait(timeout)


class TaskCancelled(Exception):
    """Internal signal: the run was cancelled while a task was in flight."""
