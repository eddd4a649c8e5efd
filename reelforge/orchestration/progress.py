"""Progress/status stream for generation tasks."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from reelforge.common.logging import get_logger
from reelforge.common.models import TaskStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """A task changed status."""

    scene_id: str
    task_id: str
    status: TaskStatus
    provider_id: str | None = None
    attempt: int = 0
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "task_id": self.task_id,
            "status": self.status.value,
            "provider_id": self.provider_id,
            "attempt": self.attempt,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


ProgressListener = Callable[[ProgressEvent], None]


class ProgressStream:
    """Fan-out of progress events to subscribed listeners.

    Listeners run on worker threads. A listener that raises is logged and
    skipped; it never fails the task that emitted the event.
    """

    def __init__(self) -> None:
        self._listeners: list[ProgressListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Add a listener. Returns a callable that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "progress_listener_failed",
                    scene_id=event.scene_id,
                    status=event.status.value,
                )


class ProgressRecorder:
    """Listener that keeps every event, in arrival order."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: ProgressEvent) -> None:
        with self._lock:
            self.events.append(event)

    def for_scene(self, scene_id: str) -> list[ProgressEvent]:
        with self._lock:
            return [e for e in self.events if e.scene_id == scene_id]
