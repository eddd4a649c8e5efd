"""Provider contract: submit / poll / cancel."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from reelforge.common.models import GenerationRequest, ProviderKind


class PollStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ProviderHandle:
    """Opaque job reference returned by ``submit``."""

    provider_id: str
    job_id: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PollResult:
    """Result of a single poll.

    A FAILED result says whether it is worth retrying (``retryable``) and
    may carry a rate-limit hint.
    """

    status: PollStatus
    result_uri: str | None = None
    error: str | None = None
    retryable: bool = True
    retry_after_seconds: float | None = None
    progress: float | None = None

    @classmethod
    def running(cls, progress: float | None = None) -> "PollResult":
        return cls(status=PollStatus.RUNNING, progress=progress)

    @classmethod
    def succeeded(cls, uri: str) -> "PollResult":
        return cls(status=PollStatus.SUCCEEDED, result_uri=uri, progress=1.0)

    @classmethod
    def failed(
        cls,
        error: str,
        retryable: bool = True,
        retry_after_seconds: float | None = None,
    ) -> "PollResult":
        return cls(
            status=PollStatus.FAILED,
            error=error,
            retryable=retryable,
            retry_after_seconds=retry_after_seconds,
        )


class GenerationProvider(ABC):
    """A generation back-end.

    Implementations may raise TransientProviderError, RateLimitError or
    PermanentProviderError from any method instead of returning a FAILED
    poll result; the orchestrator treats both the same way.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Registry id of this provider."""
        pass

    @property
    @abstractmethod
    def kind(self) -> ProviderKind:
        pass

    @abstractmethod
    def submit(self, request: GenerationRequest) -> ProviderHandle:
        """Start a generation job."""
        pass

    @abstractmethod
    def poll(self, handle: ProviderHandle) -> PollResult:
        """Check on a job."""
        pass

    @abstractmethod
    def cancel(self, handle: ProviderHandle) -> None:
        """Best-effort cancellation of a running job."""
        pass
