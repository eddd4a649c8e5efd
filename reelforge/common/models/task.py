"""Generation task state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import Field

from reelforge.common.errors import TaskStateError
from reelforge.common.models.base import FrozenModel, generate_id
from reelforge.common.models.scene import ContentType, MediaReference, Scene


class TaskStatus(str, Enum):
    """Lifecycle of a generation task."""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED_TRANSIENT = "failed_transient"
    FAILED_PERMANENT = "failed_permanent"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.EXHAUSTED, TaskStatus.CANCELLED}
)

ALLOWED_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset(
        {TaskStatus.DISPATCHED, TaskStatus.EXHAUSTED, TaskStatus.CANCELLED}
    ),
    TaskStatus.DISPATCHED: frozenset(
        {
            TaskStatus.POLLING,
            TaskStatus.FAILED_TRANSIENT,
            TaskStatus.FAILED_PERMANENT,
            TaskStatus.CANCELLED,
        }
    ),
    TaskStatus.POLLING: frozenset(
        {
            TaskStatus.COMPLETED,
            TaskStatus.FAILED_TRANSIENT,
            TaskStatus.FAILED_PERMANENT,
            TaskStatus.CANCELLED,
        }
    ),
    TaskStatus.FAILED_TRANSIENT: frozenset(
        {TaskStatus.DISPATCHED, TaskStatus.EXHAUSTED, TaskStatus.CANCELLED}
    ),
    TaskStatus.FAILED_PERMANENT: frozenset(
        {TaskStatus.DISPATCHED, TaskStatus.EXHAUSTED, TaskStatus.CANCELLED}
    ),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.EXHAUSTED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


class SceneOutcome(str, Enum):
    """User-visible result of generating a scene."""

    RESOLVED_PRIMARY = "resolved-primary"
    RESOLVED_FALLBACK = "resolved-fallback"
    PLACEHOLDER_FAILED = "placeholder-failed"


class GenerationRequest(FrozenModel):
    """What gets submitted to a provider."""

    scene_id: str
    prompt: str = ""
    style: str = "cinematic"
    content_type: ContentType = ContentType.VIDEO
    duration_seconds: float
    tags: list[str] = Field(default_factory=list)
    aspect_ratio: str = "16:9"

    @classmethod
    def for_scene(cls, scene: Scene, aspect_ratio: str = "16:9") -> "GenerationRequest":
        return cls(
            scene_id=scene.id,
            prompt=scene.prompt,
            style=scene.style,
            content_type=scene.content_type,
            duration_seconds=scene.duration_seconds,
            tags=list(scene.tags),
            aspect_ratio=aspect_ratio,
        )


@dataclass
class StatusChange:
    """One entry in a task's history."""

    status: TaskStatus
    provider_id: str | None
    attempt: int
    message: str = ""
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class GenerationTask:
    """One scene's trip through the provider list.

    Owned by a single worker. ``transition`` is the only way to move the
    status and refuses anything once a terminal state is reached.
    """

    scene_id: str
    request: GenerationRequest
    task_id: str = field(default_factory=lambda: generate_id("task"))
    status: TaskStatus = TaskStatus.PENDING
    provider_id: str | None = None
    ranked_providers: list[str] = field(default_factory=list)
    attempt_count: int = 0
    result: MediaReference | None = None
    error: str | None = None
    fallback_used: bool = False
    history: list[StatusChange] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def dispatch_count(self) -> int:
        return sum(1 for h in self.history if h.status == TaskStatus.DISPATCHED)

    def transition(
        self,
        status: TaskStatus,
        message: str = "",
        provider_id: str | None = None,
    ) -> StatusChange:
        """Move to ``status`` or raise TaskStateError if that is illegal."""
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise TaskStateError(
                f"Illegal task transition {self.status.value} -> {status.value}",
                {"task_id": self.task_id, "scene_id": self.scene_id},
            )
        if provider_id is not None:
            self.provider_id = provider_id
        if status == TaskStatus.DISPATCHED:
            self.attempt_count += 1
        self.status = status
        change = StatusChange(
            status=status,
            provider_id=self.provider_id,
            attempt=self.attempt_count,
            message=message,
        )
        self.history.append(change)
        return change

    @property
    def outcome(self) -> SceneOutcome | None:
        if not self.is_terminal:
            return None
        if self.status == TaskStatus.COMPLETED:
            if self.fallback_used:
                return SceneOutcome.RESOLVED_FALLBACK
            return SceneOutcome.RESOLVED_PRIMARY
        return SceneOutcome.PLACEHOLDER_FAILED

    def summary(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "scene_id": self.scene_id,
            "status": self.status.value,
            "provider_id": self.provider_id,
            "attempts": self.attempt_count,
            "error": self.error,
        }
