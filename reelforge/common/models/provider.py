"""Provider capability records."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from reelforge.common.models.base import FrozenModel
from reelforge.common.models.scene import ContentType

# Provider kinds are the content types a provider can produce.
ProviderKind = ContentType

ALL_STYLES = "*"


class QualityTier(str, Enum):
    """Output quality tier, ordered standard < premium < ultra."""

    STANDARD = "standard"
    PREMIUM = "premium"
    ULTRA = "ultra"

    @property
    def rank(self) -> int:
        return TIER_RANK[self]


TIER_RANK = {
    QualityTier.STANDARD: 0,
    QualityTier.PREMIUM: 1,
    QualityTier.ULTRA: 2,
}


class ProviderCapability(FrozenModel):
    """What a provider can do and what it costs."""

    provider_id: str
    display_name: str = ""
    kind: ProviderKind = ProviderKind.VIDEO
    styles: list[str] = Field(default_factory=lambda: [ALL_STYLES])
    motion_types: list[str] = Field(default_factory=list)
    max_duration_seconds: float | None = Field(default=None, gt=0.0)
    quality_tier: QualityTier = QualityTier.STANDARD
    relative_cost: float = Field(default=1.0, ge=0.0)
    reliability: float = Field(default=0.9, ge=0.0, le=1.0)

    def supports_style(self, style: str) -> bool:
        return ALL_STYLES in self.styles or style.lower() in {
            s.lower() for s in self.styles
        }

    def supports_motion(self, motion_type: str | None) -> bool:
        # An empty list places no constraint on motion
        if motion_type is None or not self.motion_types:
            return True
        return motion_type.lower() in {m.lower() for m in self.motion_types}

    def supports_duration(self, duration_seconds: float) -> bool:
        return (
            self.max_duration_seconds is None
            or self.max_duration_seconds >= duration_seconds
        )

    def summary(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "kind": self.kind.value,
            "tier": self.quality_tier.value,
            "reliability": round(self.reliability, 3),
        }
