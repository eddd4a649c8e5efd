"""Scene and per-scene composition specs."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from reelforge.common.models.base import FrozenModel


class ContentType(str, Enum):
    """Kind of media a scene (or provider) deals in."""

    VIDEO = "video"
    IMAGE = "image"
    MUSIC = "music"
    SPEECH = "speech"


class TransitionType(str, Enum):
    """Scene-to-scene transition styles."""

    CUT = "cut"
    FADE = "fade"
    DISSOLVE = "dissolve"
    ELEGANT_DISSOLVE = "elegant-dissolve"
    LIGHT_LEAK = "light-leak"
    FILM_BURN = "film-burn"
    WHIP_PAN = "whip-pan"


class TransitionDirection(str, Enum):
    """Travel direction for directional transitions."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class MediaReference(FrozenModel):
    """Pointer to a generated (or placeholder) asset."""

    uri: str
    kind: ContentType = ContentType.VIDEO
    provider_id: str | None = None
    is_placeholder: bool = False


class TransitionSpec(FrozenModel):
    """How one scene hands over to the next."""

    type: TransitionType = TransitionType.CUT
    duration_seconds: float = Field(default=0.0, ge=0.0)
    direction: TransitionDirection = TransitionDirection.RIGHT
    style: str = "warm"
    intensity: float = Field(default=1.0, ge=0.0, le=1.0)

    @property
    def is_cut(self) -> bool:
        return self.type == TransitionType.CUT or self.duration_seconds <= 0


class TextOverlaySpec(FrozenModel):
    """Text shown over a scene. Times are relative to the scene start."""

    text: str
    start_seconds: float = Field(default=0.0, ge=0.0)
    duration_seconds: float | None = Field(
        default=None, description="None keeps the overlay until the scene ends"
    )
    position: str = "bottom"
    style: dict[str, Any] = Field(default_factory=dict)


class NarrationSpec(FrozenModel):
    """Voice-over for a scene. Drives music ducking."""

    uri: str
    start_seconds: float = Field(default=0.0, ge=0.0)
    duration_seconds: float | None = Field(
        default=None, description="None means the voice runs to the scene end"
    )
    volume: float = Field(default=1.0, ge=0.0, le=1.0)


class SoundEventSpec(FrozenModel):
    """One-shot sound effect (whoosh, impact, logo reveal...)."""

    sound_id: str
    uri: str
    offset_seconds: float = Field(default=0.0, ge=0.0)
    duration_seconds: float = Field(default=0.5, gt=0.0)
    volume: float = Field(default=0.3, ge=0.0, le=1.0)
    category: str = "transition"


class Scene(FrozenModel):
    """A scene in production order.

    Scenes are immutable; generation results are attached through
    ``with_media`` / ``with_failure`` which return updated copies.
    """

    id: str
    order: int = Field(ge=0)
    duration_seconds: float
    style: str = "cinematic"
    motion_type: str | None = None
    content_type: ContentType = ContentType.VIDEO
    prompt: str = ""
    tags: list[str] = Field(default_factory=list)
    preferred_providers: list[str] = Field(default_factory=list)

    media: MediaReference | None = None
    generation_error: str | None = None

    text_overlays: list[TextOverlaySpec] = Field(default_factory=list)
    transition_in: TransitionSpec | None = None
    transition_out: TransitionSpec | None = None
    narration: NarrationSpec | None = None
    sound_events: list[SoundEventSpec] = Field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.media is not None and not self.media.is_placeholder

    @property
    def is_failed(self) -> bool:
        return self.generation_error is not None

    def with_media(self, media: MediaReference) -> "Scene":
        """Return a copy with resolved media and no failure marker."""
        return self.model_copy(update={"media": media, "generation_error": None})

    def with_failure(self, reason: str, placeholder: MediaReference) -> "Scene":
        """Return a copy marked failed, carrying a placeholder reference."""
        return self.model_copy(
            update={"media": placeholder, "generation_error": reason}
        )

    def cleared(self) -> "Scene":
        """Return a copy with media and failure marker removed."""
        return self.model_copy(update={"media": None, "generation_error": None})

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "duration_seconds": self.duration_seconds,
            "style": self.style,
            "content_type": self.content_type.value,
        }
