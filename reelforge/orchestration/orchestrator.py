"""Generation orchestrator.

Runs one GenerationTask per scene on a bounded thread pool:

    Pending -> Dispatched -> Polling -> Completed
                   |            |
                   +------------+--> Failed-Transient -> (retry same provider)
                                +--> Failed-Permanent -> (next ranked provider)

Transient failures retry the same provider with exponential backoff;
permanent failures and exhausted retries advance to the next provider in
the selector's ranking. When the ranking runs out the task is Exhausted
and the scene gets a placeholder. A run never fails because a scene did.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import Field

from reelforge.common.config import Settings, get_settings
from reelforge.common.errors import (
    AllProvidersExhausted,
    NoCompatibleProvider,
    PermanentProviderError,
    ProviderError,
    RateLimitError,
    TransientProviderError,
)
from reelforge.common.logging import get_logger
from reelforge.common.models import (
    FrozenModel,
    GenerationRequest,
    GenerationTask,
    MediaReference,
    Scene,
    SceneOutcome,
    TaskStatus,
)
from reelforge.orchestration.cancellation import CancellationToken, TaskCancelled
from reelforge.orchestration.placeholder import create_placeholder_reference
from reelforge.orchestration.progress import ProgressEvent, ProgressStream
from reelforge.orchestration.retry import RetryPolicy
from reelforge.providers.base import GenerationProvider, PollStatus, ProviderHandle
from reelforge.providers.registry import ProviderRegistry
from reelforge.providers.selector import select_for_scene

logger = get_logger(__name__)


class OrchestratorConfig(FrozenModel):
    """Timing and pool settings for the orchestrator."""

    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    poll_interval_seconds: float = Field(default=2.0, ge=0.0)
    task_deadline_seconds: float = Field(default=600.0, gt=0.0)
    pool_width: int | None = Field(default=None, gt=0)
    workers_per_provider: int = Field(default=2, gt=0)
    aspect_ratio: str = "16:9"
    placeholder_dir: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrchestratorConfig":
        return cls(
            retry=RetryPolicy.from_settings(settings),
            poll_interval_seconds=settings.poll_interval_seconds,
            task_deadline_seconds=settings.task_deadline_seconds,
            pool_width=settings.pool_width,
            workers_per_provider=settings.workers_per_provider,
        )


@dataclass
class OrchestrationResult:
    """Resolved scenes plus the task that produced each one."""

    scenes: list[Scene]
    tasks: dict[str, GenerationTask] = field(default_factory=dict)
    outcomes: dict[str, SceneOutcome] = field(default_factory=dict)
    cancelled: bool = False
    pool_width: int = 0

    def scene(self, scene_id: str) -> Scene:
        for scene in self.scenes:
            if scene.id == scene_id:
                return scene
        raise KeyError(scene_id)

    @property
    def placeholder_scene_ids(self) -> list[str]:
        return [
            sid
            for sid, outcome in self.outcomes.items()
            if outcome == SceneOutcome.PLACEHOLDER_FAILED
        ]

    def summary(self) -> dict[str, Any]:
        counts: dict[str, int] = {}
        for outcome in self.outcomes.values():
            counts[outcome.value] = counts.get(outcome.value, 0) + 1
        return {
            "scenes": len(self.scenes),
            "tasks": len(self.tasks),
            "outcomes": counts,
            "cancelled": self.cancelled,
            "pool_width": self.pool_width,
        }


class GenerationOrchestrator:
    """Dispatches scene generation with retry, fallback and cancellation."""

    def __init__(
        self,
        registry: ProviderRegistry,
        providers: Mapping[str, GenerationProvider] | Iterable[GenerationProvider],
        config: OrchestratorConfig | None = None,
        progress: ProgressStream | None = None,
    ):
        self.registry = registry
        if isinstance(providers, Mapping):
            self.providers = dict(providers)
        else:
            self.providers = {p.provider_id: p for p in providers}
        self.config = config or OrchestratorConfig.from_settings(get_settings())
        self.progress = progress or ProgressStream()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def run(
        self,
        scenes: Sequence[Scene],
        cancel_token: CancellationToken | None = None,
    ) -> OrchestrationResult:
        """Generate media for every scene that needs it.

        Returns once every task is terminal. Scenes come back in ``order``
        regardless of completion order.
        """
        token = cancel_token or CancellationToken()
        ordered = sorted(scenes, key=lambda s: s.order)
        pending = [s for s in ordered if _needs_generation(s)]
        width = self.pool_width_for(pending)

        logger.info(
            "orchestration_starting",
            scenes=len(ordered),
            to_generate=len(pending),
            pool_width=width,
        )
        start = time.monotonic()

        tasks: dict[str, GenerationTask] = {}
        if pending:
            with ThreadPoolExecutor(
                max_workers=width, thread_name_prefix="reelforge-gen"
            ) as pool:
                futures = {pool.submit(self._run_task, scene, token): scene.id for scene in pending}
                for future in as_completed(futures):
                    try:
                        task = future.result()
                    except Exception:
                        # Stop the other workers before the error propagates
                        token.cancel("worker_failed")
                        logger.exception("generation_worker_failed", scene_id=futures[future])
                        raise
                    tasks[task.scene_id] = task

        resolved: list[Scene] = []
        outcomes: dict[str, SceneOutcome] = {}
        for scene in ordered:
            task = tasks.get(scene.id)
            if task is None:
                resolved.append(scene)
                outcomes[scene.id] = SceneOutcome.RESOLVED_PRIMARY
                continue
            resolved.append(self._apply_task(scene, task))
            outcomes[scene.id] = task.outcome

        result = OrchestrationResult(
            scenes=resolved,
            tasks={sid: tasks[sid] for sid in (s.id for s in ordered) if sid in tasks},
            outcomes=outcomes,
            cancelled=token.cancelled,
            pool_width=width,
        )
        logger.info(
            "orchestration_complete",
            duration_seconds=round(time.monotonic() - start, 3),
            **result.summary(),
        )
        return result

    def generate_scene(
        self,
        scene: Scene,
        cancel_token: CancellationToken | None = None,
        exclude_providers: Sequence[str] = (),
    ) -> tuple[Scene, GenerationTask]:
        """Run a fresh task for a single scene on the calling thread."""
        token = cancel_token or CancellationToken()
        task = self._run_task(scene.cleared(), token, exclude_providers)
        return self._apply_task(scene, task), task

    def pool_width_for(self, scenes: Sequence[Scene]) -> int:
        """Configured width, else distinct providers in use x workers per provider."""
        if not scenes:
            return 1
        if self.config.pool_width:
            return self.config.pool_width

        in_use: set[str] = set()
        for scene in scenes:
            try:
                ranked = select_for_scene(self.registry, scene)
            except NoCompatibleProvider:
                continue
            in_use.update(c.provider_id for c in ranked if c.provider_id in self.providers)

        width = max(1, len(in_use)) * self.config.workers_per_provider
        return max(1, min(width, len(scenes)))

    # -------------------------------------------------------------------------
    # Task lifecycle
    # -------------------------------------------------------------------------

    def _run_task(
        self,
        scene: Scene,
        token: CancellationToken,
        exclude_providers: Sequence[str] = (),
    ) -> GenerationTask:
        task = GenerationTask(
            scene_id=scene.id,
            request=GenerationRequest.for_scene(scene, self.config.aspect_ratio),
        )
        self._emit(task, "queued")

        if token.cancelled:
            self._set_status(task, TaskStatus.CANCELLED, "run cancelled before dispatch")
            return task

        try:
            ranked = select_for_scene(self.registry, scene, exclude=exclude_providers)
        except NoCompatibleProvider as e:
            task.error = e.message
            self._set_status(task, TaskStatus.EXHAUSTED, e.message)
            return task

        task.ranked_providers = [c.provider_id for c in ranked]

        for index, capability in enumerate(ranked):
            provider = self.providers.get(capability.provider_id)
            if provider is None:
                logger.warning(
                    "provider_not_connected",
                    provider=capability.provider_id,
                    scene_id=scene.id,
                )
                continue

            try:
                media = self._try_provider(task, provider, token)
            except TaskCancelled:
                self._set_status(task, TaskStatus.CANCELLED, "run cancelled")
                return task

            if media is not None:
                self.registry.record_success(provider.provider_id)
                task.result = media
                task.fallback_used = index > 0
                task.error = None
                self._set_status(task, TaskStatus.COMPLETED, media.uri)
                return task

            self.registry.record_failure(provider.provider_id)
            logger.info(
                "provider_abandoned",
                scene_id=scene.id,
                provider=provider.provider_id,
                next_provider=task.ranked_providers[index + 1]
                if index + 1 < len(task.ranked_providers)
                else None,
            )

        if token.cancelled:
            self._set_status(task, TaskStatus.CANCELLED, "run cancelled")
            return task

        exhausted = AllProvidersExhausted(scene.id, task.attempt_count, task.error)
        task.error = task.error or "no connected provider"
        self._set_status(task, TaskStatus.EXHAUSTED, exhausted.message)
        logger.warning("scene_generation_exhausted", **exhausted.to_dict())
        return task

    def _try_provider(
        self,
        task: GenerationTask,
        provider: GenerationProvider,
        token: CancellationToken,
    ) -> MediaReference | None:
        """Attempt one provider with retries. None means move on."""
        retry = self.config.retry
        retries = 0

        while True:
            if token.cancelled:
                raise TaskCancelled()

            self._set_status(
                task, TaskStatus.DISPATCHED, provider_id=provider.provider_id
            )
            try:
                return self._attempt(task, provider, token)
            except TransientProviderError as e:
                task.error = e.message
                self._set_status(task, TaskStatus.FAILED_TRANSIENT, e.message)
                if not retry.should_retry(retries):
                    return None

                retries += 1
                retry_after = e.retry_after_seconds if isinstance(e, RateLimitError) else None
                delay = retry.delay_for(retries, retry_after)
                logger.info(
                    "task_retry_scheduled",
                    scene_id=task.scene_id,
                    provider=provider.provider_id,
                    retry=retries,
                    delay_seconds=delay,
                    rate_limited=isinstance(e, RateLimitError),
                )
                if token.wait(delay):
                    raise TaskCancelled()
            except ProviderError as e:
                # Permanent, or unclassified: no point retrying this provider
                task.error = e.message
                self._set_status(task, TaskStatus.FAILED_PERMANENT, e.message)
                return None

    def _attempt(
        self,
        task: GenerationTask,
        provider: GenerationProvider,
        token: CancellationToken,
    ) -> MediaReference:
        """Submit once and poll until done, failed, timed out or cancelled."""
        handle = self._call_provider(provider, "submit", provider.submit, task.request)
        self._set_status(task, TaskStatus.POLLING, f"job {handle.job_id}")
        deadline = time.monotonic() + self.config.task_deadline_seconds

        while True:
            if token.cancelled:
                self._cancel_handle(provider, handle)
                raise TaskCancelled()

            try:
                result = self._call_provider(provider, "poll", provider.poll, handle)
            except ProviderError:
                # The remote job may still be running
                self._cancel_handle(provider, handle)
                raise

            if result.status == PollStatus.SUCCEEDED:
                return MediaReference(
                    uri=result.result_uri or "",
                    kind=task.request.content_type,
                    provider_id=provider.provider_id,
                )

            if result.status == PollStatus.FAILED:
                message = result.error or "generation failed"
                if result.retry_after_seconds is not None:
                    raise RateLimitError(
                        message, provider.provider_id, result.retry_after_seconds
                    )
                if result.retryable:
                    raise TransientProviderError(message, provider.provider_id)
                raise PermanentProviderError(message, provider.provider_id)

            if time.monotonic() >= deadline:
                self._cancel_handle(provider, handle)
                raise TransientProviderError(
                    "poll deadline exceeded",
                    provider.provider_id,
                    {"deadline_seconds": self.config.task_deadline_seconds},
                )

            if token.wait(self.config.poll_interval_seconds):
                self._cancel_handle(provider, handle)
                raise TaskCancelled()

    def _call_provider(
        self,
        provider: GenerationProvider,
        operation: str,
        call: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """Invoke a provider client method.

        Anything a client raises outside the ProviderError taxonomy (socket
        timeouts, connection resets, decoding errors) is reported as a
        permanent failure of that provider so fallback can continue.
        """
        try:
            return call(*args)
        except ProviderError:
            raise
        except Exception as e:
            logger.exception(
                "provider_call_failed",
                provider=provider.provider_id,
                operation=operation,
                error_type=type(e).__name__,
            )
            raise PermanentProviderError(
                f"{operation} failed: {type(e).__name__}: {e}",
                provider.provider_id,
                {"operation": operation, "error_type": type(e).__name__},
            ) from e

    def _cancel_handle(self, provider: GenerationProvider, handle: ProviderHandle) -> None:
        try:
            self._call_provider(provider, "cancel", provider.cancel, handle)
        except ProviderError as e:
            logger.warning(
                "provider_cancel_failed",
                provider=provider.provider_id,
                job_id=handle.job_id,
                error=e.message,
            )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _apply_task(self, scene: Scene, task: GenerationTask) -> Scene:
        if task.status == TaskStatus.COMPLETED and task.result is not None:
            return scene.with_media(task.result)

        placeholder = create_placeholder_reference(scene, self.config.placeholder_dir)
        reason = task.error or task.status.value
        if task.status == TaskStatus.CANCELLED:
            reason = "cancelled"
        return scene.with_failure(reason, placeholder)

    def _set_status(
        self,
        task: GenerationTask,
        status: TaskStatus,
        message: str = "",
        provider_id: str | None = None,
    ) -> None:
        task.transition(status, message, provider_id)
        logger.debug(
            "task_status_changed",
            scene_id=task.scene_id,
            task_id=task.task_id,
            status=status.value,
            provider=task.provider_id,
            attempt=task.attempt_count,
        )
        self._emit(task, message)

    def _emit(self, task: GenerationTask, message: str = "") -> None:
        self.progress.emit(
            ProgressEvent(
                scene_id=task.scene_id,
                task_id=task.task_id,
                status=task.status,
                provider_id=task.provider_id,
                attempt=task.attempt_count,
                message=message,
            )
        )


def _needs_generation(scene: Scene) -> bool:
    return scene.media is None or scene.media.is_placeholder
