"""Provider selection.

Filters the registry down to providers that can serve a request and ranks
them. Ranking:

1. caller's explicit preference order (compatible preferred providers first)
2. quality tier, best first
3. reliability, highest first
4. cost, cheapest first
5. provider id, for a stable order
"""

from __future__ import annotations

from typing import Sequence

from reelforge.common.errors import NoCompatibleProvider
from reelforge.common.logging import get_logger
from reelforge.common.models import ContentType, ProviderCapability, Scene
from reelforge.providers.registry import ProviderRegistry

logger = get_logger(__name__)


def rejection_reason(
    capability: ProviderCapability,
    style: str,
    content_type: ContentType,
    duration_seconds: float,
    motion_type: str | None = None,
) -> str | None:
    """Why ``capability`` cannot serve the request, or None if it can."""
    if capability.kind != content_type:
        return f"kind {capability.kind.value} != {content_type.value}"
    if not capability.supports_style(style):
        return f"style {style!r} not supported"
    if not capability.supports_motion(motion_type):
        return f"motion {motion_type!r} not supported"
    if not capability.supports_duration(duration_seconds):
        return (
            f"max duration {capability.max_duration_seconds}s < {duration_seconds}s"
        )
    return None


def _default_rank(capability: ProviderCapability) -> tuple:
    return (
        -capability.quality_tier.rank,
        -capability.reliability,
        capability.relative_cost,
        capability.provider_id,
    )


def select_providers(
    registry: ProviderRegistry,
    style: str,
    content_type: ContentType,
    duration_seconds: float,
    preferred: Sequence[str] | None = None,
    exclude: Sequence[str] = (),
    motion_type: str | None = None,
) -> list[ProviderCapability]:
    """Rank compatible providers for a request.

    Raises:
        NoCompatibleProvider: if nothing in the registry fits.
    """
    compatible: list[ProviderCapability] = []
    rejections: dict[str, str] = {}

    for capability in registry.capabilities():
        if capability.provider_id in exclude:
            rejections[capability.provider_id] = "excluded by caller"
            continue
        reason = rejection_reason(
            capability, style, content_type, duration_seconds, motion_type
        )
        if reason:
            rejections[capability.provider_id] = reason
        else:
            compatible.append(capability)

    if not compatible:
        logger.warning(
            "no_compatible_provider",
            style=style,
            content_type=content_type.value,
            duration_seconds=duration_seconds,
            rejections=rejections,
        )
        raise NoCompatibleProvider(
            f"No provider supports {content_type.value} / {style!r} / {duration_seconds}s",
            rejections,
        )

    ranked = sorted(compatible, key=_default_rank)
    if preferred:
        by_id = {c.provider_id: c for c in ranked}
        head = []
        for provider_id in preferred:
            if provider_id in by_id and by_id[provider_id] not in head:
                head.append(by_id[provider_id])
        ranked = head + [c for c in ranked if c not in head]

    return ranked


def select_for_scene(
    registry: ProviderRegistry,
    scene: Scene,
    exclude: Sequence[str] = (),
) -> list[ProviderCapability]:
    """``select_providers`` with the request taken from a scene."""
    return select_providers(
        registry,
        style=scene.style,
        content_type=scene.content_type,
        duration_seconds=scene.duration_seconds,
        preferred=scene.preferred_providers or None,
        exclude=exclude,
        motion_type=scene.motion_type,
    )
