"""Retry policy for transient provider failures."""

from __future__ import annotations

from pydantic import Field

from reelforge.common.config import Settings
from reelforge.common.models import FrozenModel


class RetryPolicy(FrozenModel):
    """Exponential backoff: ``base * multiplier ** (retry - 1)``, capped.

    Rate-limit hints act as a floor and may exceed the cap.
    """

    max_retries: int = Field(default=2, ge=0)
    base_delay_seconds: float = Field(default=1.0, ge=0.0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_seconds: float = Field(default=30.0, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            base_delay_seconds=settings.backoff_base_seconds,
            multiplier=settings.backoff_multiplier,
            max_delay_seconds=settings.backoff_max_seconds,
        )

    def should_retry(self, retries_done: int) -> bool:
        return retries_done < self.max_retries

    def delay_for(self, retry_number: int, retry_after_seconds: float | None = None) -> float:
        """Delay before retry number ``retry_number`` (1-based)."""
        exponent = max(0, retry_number - 1)
        delay = min(
            self.max_delay_seconds,
            self.base_delay_seconds * self.multiplier**exponent,
        )
        if retry_after_seconds is not None:
            delay = max(delay, retry_after_seconds)
        return delay
