"""Transition blend parameters.

``blend(spec, progress)`` maps a transition type and a progress value in
[0, 1] to the parameters a renderer needs for both layers. All functions
are pure.

Every profile is written for the *dominant* layer as a function of the
distance ``u`` from the nearest edge of the window (0 at the edges, 0.5
at the midpoint). Below 0.5 the outgoing scene dominates and gets the
forward parameters; from 0.5 on the incoming scene dominates and gets the
same parameters mirrored (its offsets point the opposite way and its scale
delta is negated). The midpoint itself belongs to the incoming scene.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Callable

from reelforge.common.models import (
    Keyframe,
    TransitionDirection,
    TransitionSpec,
    TransitionType,
    TransitionWindow,
)

OUTGOING = "outgoing"
INCOMING = "incoming"

DIRECTION_VECTORS: dict[TransitionDirection, tuple[int, int]] = {
    TransitionDirection.RIGHT: (1, 0),
    TransitionDirection.LEFT: (-1, 0),
    TransitionDirection.UP: (0, -1),
    TransitionDirection.DOWN: (0, 1),
}

# Overlay strength per light-leak palette
LIGHT_LEAK_STYLES = {
    "warm": 0.9,
    "golden": 0.85,
    "vintage": 0.85,
    "cool": 0.8,
    "pink": 0.8,
    "natural": 0.75,
}

# Burn strength per film-burn palette
FILM_BURN_STYLES = {
    "intense": 1.0,
    "classic": 0.9,
    "warm": 0.9,
    "organic": 0.85,
    "cool": 0.85,
}

WHIP_PAN_MAX_BLUR = 60.0
FILM_BURN_MAX_BLUR = 20.0
ELEGANT_SCALE_DELTA = 0.02


# =============================================================================
# Easing
# =============================================================================


def linear(t: float) -> float:
    return t


def ease_in(t: float) -> float:
    return t * t


def ease_out(t: float) -> float:
    return 1 - (1 - t) * (1 - t)


def ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2 * t * t
    return 1 - ((-2 * t + 2) ** 2) / 2


def exponential(t: float) -> float:
    """Exponential ease-in-out."""
    if t <= 0:
        return 0.0
    if t >= 1:
        return 1.0
    if t < 0.5:
        return (2 ** (20 * t - 10)) / 2
    return (2 - 2 ** (-20 * t + 10)) / 2


EASINGS: dict[str, Callable[[float], float]] = {
    "linear": linear,
    "ease-in": ease_in,
    "ease-out": ease_out,
    "ease-in-out": ease_in_out,
    "exponential": exponential,
}


# =============================================================================
# Blend parameters
# =============================================================================


@dataclass(frozen=True)
class BlendParameters:
    """Per-frame render parameters for both layers of a transition.

    Offsets are fractions of the frame size; blur is in pixels.
    """

    progress: float
    dominant: str
    outgoing_opacity: float = 1.0
    incoming_opacity: float = 0.0
    outgoing_offset_x: float = 0.0
    outgoing_offset_y: float = 0.0
    incoming_offset_x: float = 0.0
    incoming_offset_y: float = 0.0
    outgoing_scale: float = 1.0
    incoming_scale: float = 1.0
    blur: float = 0.0
    desaturation: float = 0.0
    overlay_opacity: float = 0.0
    overlay_style: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class _Profile:
    """Dominant/secondary layer state at distance ``u`` from the edge."""

    dominant_opacity: float = 1.0
    secondary_opacity: float = 0.0
    dominant_travel: float = 0.0
    secondary_travel: float = 0.0
    dominant_scale: float = 0.0
    secondary_scale: float = 0.0
    blur: float = 0.0
    desaturation: float = 0.0
    overlay: float = 0.0
    overlay_style: str | None = None


def _cut(spec: TransitionSpec, u: float) -> _Profile:
    return _Profile()


def _fade(spec: TransitionSpec, u: float) -> _Profile:
    # Through black: the dominant layer fades out toward the midpoint
    return _Profile(dominant_opacity=1 - 2 * u)


def _dissolve(spec: TransitionSpec, u: float) -> _Profile:
    e = ease_in_out(u)
    return _Profile(dominant_opacity=1 - e, secondary_opacity=e)


def _elegant_dissolve(spec: TransitionSpec, u: float) -> _Profile:
    e = exponential(u)
    return _Profile(
        dominant_opacity=1 - e,
        secondary_opacity=e,
        dominant_scale=ELEGANT_SCALE_DELTA * e,
        secondary_scale=ELEGANT_SCALE_DELTA * (1 - e),
    )


def _light_leak(spec: TransitionSpec, u: float) -> _Profile:
    e = ease_in_out(u)
    strength = LIGHT_LEAK_STYLES.get(spec.style, LIGHT_LEAK_STYLES["warm"])
    # Leak reaches full strength 30% into the window and holds through the middle
    leak = min(1.0, u / 0.3)
    return _Profile(
        dominant_opacity=1 - e,
        secondary_opacity=e,
        overlay=spec.intensity * strength * leak,
        overlay_style=spec.style,
    )


def _film_burn(spec: TransitionSpec, u: float) -> _Profile:
    e = ease_in_out(u)
    strength = FILM_BURN_STYLES.get(spec.style, FILM_BURN_STYLES["classic"])
    if u < 0.15:
        burn = 0.3 * u / 0.15
    else:
        burn = 0.3 + 0.7 * (u - 0.15) / 0.35
    burn = min(1.0, burn)
    return _Profile(
        dominant_opacity=1 - e,
        secondary_opacity=e,
        blur=FILM_BURN_MAX_BLUR * burn,
        desaturation=0.4 * burn,
        overlay=spec.intensity * strength * burn,
        overlay_style=spec.style,
    )


def _whip_pan(spec: TransitionSpec, u: float) -> _Profile:
    s = 2 * u
    if s < 0.6:
        blur = (WHIP_PAN_MAX_BLUR / 2) * s / 0.6
    else:
        blur = WHIP_PAN_MAX_BLUR / 2 + (WHIP_PAN_MAX_BLUR / 2) * (s - 0.6) / 0.4
    return _Profile(
        dominant_opacity=1.0,
        secondary_opacity=0.0,
        dominant_travel=ease_in(s),
        blur=blur * spec.intensity,
    )


PROFILES: dict[TransitionType, Callable[[TransitionSpec, float], _Profile]] = {
    TransitionType.CUT: _cut,
    TransitionType.FADE: _fade,
    TransitionType.DISSOLVE: _dissolve,
    TransitionType.ELEGANT_DISSOLVE: _elegant_dissolve,
    TransitionType.LIGHT_LEAK: _light_leak,
    TransitionType.FILM_BURN: _film_burn,
    TransitionType.WHIP_PAN: _whip_pan,
}


def blend(spec: TransitionSpec, progress: float) -> BlendParameters:
    """Blend parameters for ``spec`` at ``progress`` (clamped to [0, 1])."""
    if math.isnan(progress):
        raise ValueError("progress must be a number")
    p = min(1.0, max(0.0, progress))
    incoming_dominant = p >= 0.5
    u = 1 - p if incoming_dominant else p

    profile = PROFILES[spec.type](spec, u)
    dx, dy = DIRECTION_VECTORS[spec.direction]

    if incoming_dominant:
        out_opacity, in_opacity = profile.secondary_opacity, profile.dominant_opacity
        out_travel, in_travel = profile.secondary_travel, profile.dominant_travel
        out_scale, in_scale = profile.secondary_scale, profile.dominant_scale
    else:
        out_opacity, in_opacity = profile.dominant_opacity, profile.secondary_opacity
        out_travel, in_travel = profile.dominant_travel, profile.secondary_travel
        out_scale, in_scale = profile.dominant_scale, profile.secondary_scale

    # Outgoing exits along the direction; incoming arrives from the opposite side
    return BlendParameters(
        progress=p,
        dominant=INCOMING if incoming_dominant else OUTGOING,
        outgoing_opacity=out_opacity,
        incoming_opacity=in_opacity,
        outgoing_offset_x=dx * out_travel,
        outgoing_offset_y=dy * out_travel,
        incoming_offset_x=-dx * in_travel,
        incoming_offset_y=-dy * in_travel,
        outgoing_scale=1 + out_scale,
        incoming_scale=1 - in_scale,
        blur=profile.blur,
        desaturation=profile.desaturation,
        overlay_opacity=profile.overlay,
        overlay_style=profile.overlay_style,
    )


def window_progress(frame_offset: int, length: int) -> float:
    """Progress at the centre of frame ``frame_offset`` of a ``length``-frame window."""
    if length <= 0:
        return 1.0
    return (frame_offset + 0.5) / length


def sample_window(window: TransitionWindow) -> list[Keyframe]:
    """One keyframe per frame of the window."""
    length = window.end_frame - window.start_frame
    return [
        Keyframe(
            frame=window.start_frame + k,
            values=blend(window.spec, window_progress(k, length)).as_dict(),
        )
        for k in range(length)
    ]
