"""Error taxonomy for generation and composition.

Provider errors drive the orchestrator's retry/fallback decisions:

- TransientProviderError: retry the same provider with backoff
- RateLimitError: transient, backoff is floored at the provider's hint
- PermanentProviderError: advance to the next ranked provider

Only ConfigurationError is fatal to a production run. Everything else is
absorbed into a scene outcome, a plan warning or a per-scene error.
"""

from __future__ import annotations

from typing import Any


class ReelforgeError(Exception):
    """Base error with a machine-readable code and structured details."""

    code = "reelforge_error"
    recoverable = False

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Provider errors
# =============================================================================


class ProviderError(ReelforgeError):
    """Failure reported by (or while talking to) a generation provider."""

    code = "provider_error"

    def __init__(
        self,
        message: str,
        provider_id: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool | None = None,
    ):
        details = dict(details or {})
        if provider_id:
            details["provider_id"] = provider_id
        super().__init__(message, details, recoverable)
        self.provider_id = provider_id


class TransientProviderError(ProviderError):
    """Timeout, 5xx, dropped connection: worth retrying on the same provider."""

    code = "transient_provider_error"
    recoverable = True


class RateLimitError(TransientProviderError):
    """Provider asked us to slow down."""

    code = "rate_limited"

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_id: str | None = None,
        retry_after_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if retry_after_seconds is not None:
            details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, provider_id, details)
        self.retry_after_seconds = retry_after_seconds


class PermanentProviderError(ProviderError):
    """Content rejected, unsupported parameters, bad credentials..."""

    code = "permanent_provider_error"
    recoverable = False


class NoCompatibleProvider(ReelforgeError):
    """No registered provider can serve the request."""

    code = "no_compatible_provider"

    def __init__(self, message: str, rejections: dict[str, str] | None = None):
        super().__init__(message, {"rejections": dict(rejections or {})})
        self.rejections = dict(rejections or {})


class AllProvidersExhausted(ReelforgeError):
    """Every ranked provider failed for a scene. Terminal for the scene only."""

    code = "all_providers_exhausted"

    def __init__(self, scene_id: str, attempts: int, last_error: str | None = None):
        super().__init__(
            f"All providers exhausted for scene {scene_id}",
            {"scene_id": scene_id, "attempts": attempts, "last_error": last_error},
        )
        self.scene_id = scene_id


# =============================================================================
# Composition / configuration errors
# =============================================================================


class TimelineInvariantViolation(ReelforgeError):
    """Timeline input that had to be corrected (e.g. transition clamped)."""

    code = "timeline_invariant_violation"
    recoverable = True


class ConfigurationError(ReelforgeError):
    """Invalid input or settings. Fatal to the run."""

    code = "configuration_error"
    recoverable = False


class TaskStateError(ReelforgeError):
    """Illegal generation task state transition."""

    code = "task_state_error"
    recoverable = False
