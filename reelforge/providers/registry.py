"""Provider registry with live reliability scores.

The registry is built once and passed explicitly to whoever needs it.
Capability records are immutable; the only mutable state is the
success/failure counters behind ``reliability``, which workers update
concurrently and which are therefore guarded by a lock.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from pydantic import TypeAdapter, ValidationError

from reelforge.common.errors import ConfigurationError
from reelforge.common.logging import get_logger
from reelforge.common.models import ProviderCapability, ProviderKind, QualityTier

logger = get_logger(__name__)

# Weight of the configured prior, in pseudo-observations.
RELIABILITY_PRIOR_WEIGHT = 10


# Default catalog. Durations in seconds, cost in dollars per output second.
DEFAULT_CAPABILITIES: list[dict[str, Any]] = [
    {
        "provider_id": "runway",
        "display_name": "Runway Gen-3",
        "kind": ProviderKind.VIDEO,
        "styles": ["hook", "cta", "cinematic", "dramatic", "emotional"],
        "motion_types": ["camera-motion", "dynamic"],
        "max_duration_seconds": 10,
        "quality_tier": QualityTier.ULTRA,
        "relative_cost": 0.05,
        "reliability": 0.95,
    },
    {
        "provider_id": "veo",
        "display_name": "Google Veo",
        "kind": ProviderKind.VIDEO,
        "styles": ["cinematic", "high-quality", "dramatic"],
        "motion_types": ["camera-motion"],
        "max_duration_seconds": 8,
        "quality_tier": QualityTier.ULTRA,
        "relative_cost": 0.06,
        "reliability": 0.9,
    },
    {
        "provider_id": "kling",
        "display_name": "Kling",
        "kind": ProviderKind.VIDEO,
        "styles": ["testimonial", "lifestyle", "human", "expressions", "story", "face"],
        "motion_types": ["subtle", "human"],
        "max_duration_seconds": 10,
        "quality_tier": QualityTier.PREMIUM,
        "relative_cost": 0.03,
        "reliability": 0.92,
    },
    {
        "provider_id": "luma",
        "display_name": "Luma Dream Machine",
        "kind": ProviderKind.VIDEO,
        "styles": ["product", "reveal", "camera-motion", "dynamic", "brand"],
        "motion_types": ["camera-motion", "orbit", "dynamic"],
        "max_duration_seconds": 5,
        "quality_tier": QualityTier.PREMIUM,
        "relative_cost": 0.04,
        "reliability": 0.9,
    },
    {
        "provider_id": "hailuo",
        "display_name": "Hailuo",
        "kind": ProviderKind.VIDEO,
        "styles": ["broll", "nature", "abstract", "supplementary", "explanation"],
        "motion_types": ["ambient"],
        "max_duration_seconds": 6,
        "quality_tier": QualityTier.STANDARD,
        "relative_cost": 0.02,
        "reliability": 0.88,
    },
    {
        "provider_id": "hunyuan",
        "display_name": "Hunyuan Video",
        "kind": ProviderKind.VIDEO,
        "styles": ["broll", "nature", "abstract"],
        "motion_types": ["ambient"],
        "max_duration_seconds": 5,
        "quality_tier": QualityTier.STANDARD,
        "relative_cost": 0.025,
        "reliability": 0.85,
    },
    {
        "provider_id": "flux-pro",
        "display_name": "FLUX Pro",
        "kind": ProviderKind.IMAGE,
        "styles": ["*"],
        "quality_tier": QualityTier.PREMIUM,
        "relative_cost": 0.05,
        "reliability": 0.95,
    },
    {
        "provider_id": "suno",
        "display_name": "Suno",
        "kind": ProviderKind.MUSIC,
        "styles": ["*"],
        "max_duration_seconds": 240,
        "quality_tier": QualityTier.PREMIUM,
        "relative_cost": 0.01,
        "reliability": 0.9,
    },
    {
        "provider_id": "elevenlabs",
        "display_name": "ElevenLabs",
        "kind": ProviderKind.SPEECH,
        "styles": ["*"],
        "quality_tier": QualityTier.ULTRA,
        "relative_cost": 0.02,
        "reliability": 0.97,
    },
]


@dataclass
class ProviderStats:
    """Observed outcomes for one provider."""

    prior: float
    successes: int = 0
    failures: int = 0

    @property
    def total(self) -> int:
        return self.successes + self.failures

    @property
    def reliability(self) -> float:
        return (self.prior * RELIABILITY_PRIOR_WEIGHT + self.successes) / (
            RELIABILITY_PRIOR_WEIGHT + self.total
        )


_capability_list = TypeAdapter(list[ProviderCapability])


class ProviderRegistry:
    """Ordered table of provider capabilities."""

    def __init__(self, capabilities: Iterable[ProviderCapability]):
        self._capabilities: dict[str, ProviderCapability] = {}
        for cap in capabilities:
            if cap.provider_id in self._capabilities:
                raise ConfigurationError(
                    f"Duplicate provider id: {cap.provider_id}",
                    {"provider_id": cap.provider_id},
                )
            self._capabilities[cap.provider_id] = cap

        self._stats = {
            pid: ProviderStats(prior=cap.reliability)
            for pid, cap in self._capabilities.items()
        }
        self._lock = threading.Lock()

        logger.debug("provider_registry_created", providers=list(self._capabilities))

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def default(cls) -> "ProviderRegistry":
        """Registry with the built-in provider catalog."""
        return cls(ProviderCapability(**entry) for entry in DEFAULT_CAPABILITIES)

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "ProviderRegistry":
        try:
            capabilities = _capability_list.validate_python(records)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid provider capability records",
                {"errors": e.errors(include_url=False)},
            ) from e
        return cls(capabilities)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProviderRegistry":
        """Load a registry from JSON: a list, or ``{"providers": [...]}``."""
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read provider registry: {path}", {"path": str(path)}
            ) from e

        if isinstance(data, dict):
            data = data.get("providers", [])
        registry = cls.from_records(data)
        logger.info("provider_registry_loaded", path=str(path), count=len(registry))
        return registry

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._capabilities

    @property
    def provider_ids(self) -> list[str]:
        return list(self._capabilities)

    def get(self, provider_id: str) -> ProviderCapability:
        """Capability record with the current reliability score."""
        cap = self._require(provider_id)
        return cap.model_copy(update={"reliability": self.reliability(provider_id)})

    def capabilities(self) -> list[ProviderCapability]:
        """Snapshot of every capability with current reliability, in order."""
        with self._lock:
            scores = {pid: s.reliability for pid, s in self._stats.items()}
        return [
            cap.model_copy(update={"reliability": scores[pid]})
            for pid, cap in self._capabilities.items()
        ]

    def _require(self, provider_id: str) -> ProviderCapability:
        try:
            return self._capabilities[provider_id]
        except KeyError:
            raise ConfigurationError(
                f"Unknown provider: {provider_id}", {"provider_id": provider_id}
            ) from None

    # -------------------------------------------------------------------------
    # Reliability
    # -------------------------------------------------------------------------

    def reliability(self, provider_id: str) -> float:
        self._require(provider_id)
        with self._lock:
            return self._stats[provider_id].reliability

    def stats(self, provider_id: str) -> ProviderStats:
        """Copy of the counters for ``provider_id``."""
        self._require(provider_id)
        with self._lock:
            s = self._stats[provider_id]
            return ProviderStats(prior=s.prior, successes=s.successes, failures=s.failures)

    def record_success(self, provider_id: str) -> float:
        self._require(provider_id)
        with self._lock:
            stats = self._stats[provider_id]
            stats.successes += 1
            score = stats.reliability
        logger.debug("provider_success_recorded", provider=provider_id, reliability=score)
        return score

    def record_failure(self, provider_id: str) -> float:
        self._require(provider_id)
        with self._lock:
            stats = self._stats[provider_id]
            stats.failures += 1
            score = stats.reliability
        logger.info("provider_failure_recorded", provider=provider_id, reliability=score)
        return score


def registry_from_settings(settings) -> ProviderRegistry:
    """File-backed registry if ``registry_path`` is set, else the built-in catalog."""
    if settings.registry_path:
        return ProviderRegistry.from_file(settings.registry_path)
    return ProviderRegistry.default()
