"""Scripted stand-in provider for demos and tests.

Each ``submit`` consumes the next outcome from the scene's script (or the
provider-wide default script), so failure sequences are reproducible:

    StubProvider("runway", scripts={"scene_2": ["transient", "ok"]})
"""

from __future__ import annotations

import threading
from collections import defaultdict
from enum import Enum
from typing import Iterable

from reelforge.common.errors import (
    PermanentProviderError,
    RateLimitError,
    TransientProviderError,
)
from reelforge.common.logging import get_logger
from reelforge.common.models import GenerationRequest, ProviderKind
from reelforge.providers.base import (
    GenerationProvider,
    PollResult,
    ProviderHandle,
)

logger = get_logger(__name__)


class StubOutcome(str, Enum):
    """Scripted behaviour for one submitted job."""

    OK = "ok"
    TRANSIENT = "transient"  # submit raises TransientProviderError
    RATE_LIMIT = "rate_limit"  # submit raises RateLimitError
    PERMANENT = "permanent"  # submit raises PermanentProviderError
    POLL_TRANSIENT = "poll_transient"  # job fails while polling, retryable
    POLL_PERMANENT = "poll_permanent"  # job fails while polling, not retryable
    HANG = "hang"  # job never finishes


class StubProvider(GenerationProvider):
    """Deterministic provider driven by outcome scripts."""

    def __init__(
        self,
        provider_id: str,
        kind: ProviderKind = ProviderKind.VIDEO,
        default_outcome: StubOutcome | str = StubOutcome.OK,
        scripts: dict[str, Iterable[StubOutcome | str]] | None = None,
        polls_until_done: int = 1,
        retry_after_seconds: float | None = None,
    ):
        self._provider_id = provider_id
        self._kind = kind
        self.default_outcome = StubOutcome(default_outcome)
        self.polls_until_done = max(1, polls_until_done)
        self.retry_after_seconds = retry_after_seconds

        self._scripts: dict[str, list[StubOutcome]] = {
            scene_id: [StubOutcome(o) for o in outcomes]
            for scene_id, outcomes in (scripts or {}).items()
        }
        self._jobs: dict[str, tuple[GenerationRequest, StubOutcome]] = {}
        self._poll_counts: dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()
        self._counter = 0

        self.submissions: list[str] = []
        self.cancelled: list[str] = []

    @property
    def provider_id(self) -> str:
        return self._provider_id

    @property
    def kind(self) -> ProviderKind:
        return self._kind

    def _next_outcome(self, scene_id: str) -> StubOutcome:
        script = self._scripts.get(scene_id)
        if script:
            return script.pop(0)
        return self.default_outcome

    def submit(self, request: GenerationRequest) -> ProviderHandle:
        with self._lock:
            self.submissions.append(request.scene_id)
            outcome = self._next_outcome(request.scene_id)
            self._counter += 1
            job_id = f"{self._provider_id}-job-{self._counter}"

        if outcome == StubOutcome.TRANSIENT:
            raise TransientProviderError("stub transient failure", self._provider_id)
        if outcome == StubOutcome.RATE_LIMIT:
            raise RateLimitError(
                provider_id=self._provider_id,
                retry_after_seconds=self.retry_after_seconds,
            )
        if outcome == StubOutcome.PERMANENT:
            raise PermanentProviderError("stub rejected request", self._provider_id)

        with self._lock:
            self._jobs[job_id] = (request, outcome)
        logger.debug("stub_job_submitted", provider=self._provider_id, job_id=job_id)
        return ProviderHandle(provider_id=self._provider_id, job_id=job_id)

    def poll(self, handle: ProviderHandle) -> PollResult:
        with self._lock:
            request, outcome = self._jobs[handle.job_id]
            self._poll_counts[handle.job_id] += 1
            polls = self._poll_counts[handle.job_id]

        if outcome == StubOutcome.HANG or polls < self.polls_until_done:
            return PollResult.running(progress=min(0.99, polls / self.polls_until_done))
        if outcome == StubOutcome.POLL_TRANSIENT:
            return PollResult.failed("stub job failed", retryable=True)
        if outcome == StubOutcome.POLL_PERMANENT:
            return PollResult.failed("stub job rejected", retryable=False)

        extension = "mp4" if self._kind == ProviderKind.VIDEO else "bin"
        return PollResult.succeeded(
            f"stub://{self._provider_id}/{request.scene_id}/{handle.job_id}.{extension}"
        )

    def cancel(self, handle: ProviderHandle) -> None:
        with self._lock:
            self.cancelled.append(handle.job_id)

    def submission_count(self, scene_id: str) -> int:
        with self._lock:
            return self.submissions.count(scene_id)
