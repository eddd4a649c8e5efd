"""Music ducking under narration.

The music bed sits at a base volume ``V0`` and dips to ``Vd`` while a
voice is speaking:

- the ramp down ends exactly where the voice starts, so every voiced frame
  is already at ``Vd``
- the volume holds at ``Vd`` for the whole voice interval
- after the voice ends it ramps back to ``V0`` over ``ramp_out`` frames
- voices closer together than ``ramp_in + ramp_out`` frames share one
  continuous low segment instead of bouncing back up in between

One-shot sound events are separate tracks and never touch the envelope.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from pydantic import Field

from reelforge.common.config import Settings
from reelforge.common.errors import ConfigurationError
from reelforge.common.logging import get_logger
from reelforge.common.models import (
    AudioEnvelope,
    FrozenModel,
    Scene,
    VoiceInterval,
    VolumeKeyframe,
)
from reelforge.timeline.builder import TimelineLayout, seconds_to_frames

logger = get_logger(__name__)

MUSIC_TRACK_ID = "music"


class DuckingConfig(FrozenModel):
    """Music levels and ramp times."""

    base_volume: float = 0.35
    duck_volume: float = 0.1
    ramp_in_seconds: float = Field(default=0.3, ge=0.0)
    ramp_out_seconds: float = Field(default=0.3, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DuckingConfig":
        return cls(
            base_volume=settings.music_base_volume,
            duck_volume=settings.music_duck_volume,
            ramp_in_seconds=settings.duck_ramp_in_seconds,
            ramp_out_seconds=settings.duck_ramp_out_seconds,
        )


def check_levels(base_volume: float, duck_volume: float) -> None:
    """Require ``0 <= duck < base <= 1``."""
    if not 0.0 <= duck_volume < base_volume <= 1.0:
        raise ConfigurationError(
            "Music levels must satisfy 0 <= duck_volume < base_volume <= 1",
            {"base_volume": base_volume, "duck_volume": duck_volume},
        )


def merge_intervals(
    intervals: Iterable[VoiceInterval], min_gap_frames: int = 0
) -> list[tuple[int, int]]:
    """Sort and merge intervals whose gap is below ``min_gap_frames``.

    Empty intervals are dropped.
    """
    spans = sorted(
        (i.start_frame, i.end_frame) for i in intervals if i.end_frame > i.start_frame
    )
    merged: list[tuple[int, int]] = []
    for start, end in spans:
        if merged and start - merged[-1][1] < min_gap_frames:
            prev_start, prev_end = merged[-1]
            merged[-1] = (prev_start, max(prev_end, end))
        else:
            merged.append((start, end))
    return merged


def duck_envelope(
    intervals: Iterable[VoiceInterval],
    base_volume: float,
    duck_volume: float,
    ramp_in_frames: int,
    ramp_out_frames: int,
    total_frames: int | None = None,
    track_id: str = MUSIC_TRACK_ID,
) -> AudioEnvelope:
    """Build the ducking envelope for a music track."""
    check_levels(base_volume, duck_volume)
    if ramp_in_frames < 0 or ramp_out_frames < 0:
        raise ConfigurationError(
            "Ramp durations must not be negative",
            {"ramp_in_frames": ramp_in_frames, "ramp_out_frames": ramp_out_frames},
        )

    groups = merge_intervals(intervals, ramp_in_frames + ramp_out_frames)
    keys: list[VolumeKeyframe] = []

    def add(frame: int, volume: float) -> None:
        if keys and keys[-1].frame == frame and keys[-1].volume == volume:
            return
        keys.append(VolumeKeyframe(frame=frame, volume=volume))

    for start, end in groups:
        ramp_start = start - ramp_in_frames
        if ramp_start <= 0 and not keys:
            if start > 0:
                # Ramp began before the timeline; enter it part-way down
                t = -ramp_start / ramp_in_frames
                add(0, base_volume + (duck_volume - base_volume) * t)
            else:
                add(0, duck_volume)
        else:
            if not keys:
                add(0, base_volume)
            add(ramp_start, base_volume)
        add(start, duck_volume)
        add(end, duck_volume)
        add(end + ramp_out_frames, base_volume)

    if not keys:
        add(0, base_volume)

    envelope = AudioEnvelope(track_id=track_id, keyframes=keys)
    if total_frames is not None:
        envelope = clip_envelope(envelope, total_frames)
    return envelope


def clip_envelope(envelope: AudioEnvelope, total_frames: int) -> AudioEnvelope:
    """Cut the envelope at ``total_frames``, interpolating the final level."""
    kept = [k for k in envelope.keyframes if k.frame <= total_frames]
    end_volume = envelope.volume_at(total_frames)
    if not kept or kept[-1].frame < total_frames:
        kept.append(VolumeKeyframe(frame=total_frames, volume=end_volume))
    return AudioEnvelope(track_id=envelope.track_id, keyframes=kept)


class AudioMixEngine:
    """Derives voice intervals from scenes and ducks the music under them."""

    def __init__(self, config: DuckingConfig, fps: int):
        check_levels(config.base_volume, config.duck_volume)
        if fps <= 0:
            raise ConfigurationError(f"fps must be positive, got {fps}", {"fps": fps})
        self.config = config
        self.fps = fps

    @property
    def ramp_in_frames(self) -> int:
        return seconds_to_frames(self.config.ramp_in_seconds, self.fps)

    @property
    def ramp_out_frames(self) -> int:
        return seconds_to_frames(self.config.ramp_out_seconds, self.fps)

    def resolve_levels(
        self, base_volume: float | None = None, duck_volume: float | None = None
    ) -> tuple[float, float]:
        """Effective (base, duck) music levels for a track's overrides.

        A base level given without a duck level keeps the configured
        duck-to-base ratio, so a quieter bed still ducks below itself.
        """
        base = self.config.base_volume if base_volume is None else base_volume
        if duck_volume is not None:
            duck = duck_volume
        elif base_volume is not None:
            duck = base * self.config.duck_volume / self.config.base_volume
        else:
            duck = self.config.duck_volume
        check_levels(base, duck)
        return base, duck

    def voice_intervals(
        self, scenes: Sequence[Scene], layout: TimelineLayout
    ) -> list[VoiceInterval]:
        """Absolute voice-active frames from each scene's narration timing."""
        intervals = []
        for scene in scenes:
            if scene.narration is None:
                continue
            scene_range = layout.range_for(scene.id)
            start = scene_range.start_frame + seconds_to_frames(
                scene.narration.start_seconds, self.fps
            )
            if scene.narration.duration_seconds is None:
                end = scene_range.end_frame
            else:
                end = min(
                    scene_range.end_frame,
                    start + seconds_to_frames(scene.narration.duration_seconds, self.fps),
                )
            if start >= end:
                logger.warning("narration_outside_scene", scene_id=scene.id)
                continue
            intervals.append(
                VoiceInterval(start_frame=start, end_frame=end, scene_id=scene.id)
            )
        return intervals

    def music_envelope(
        self,
        intervals: Sequence[VoiceInterval],
        total_frames: int,
        base_volume: float | None = None,
        duck_volume: float | None = None,
    ) -> AudioEnvelope:
        base, duck = self.resolve_levels(base_volume, duck_volume)

        envelope = duck_envelope(
            intervals,
            base_volume=base,
            duck_volume=duck,
            ramp_in_frames=self.ramp_in_frames,
            ramp_out_frames=self.ramp_out_frames,
            total_frames=total_frames,
        )
        logger.debug(
            "music_envelope_built",
            voice_intervals=len(intervals),
            keyframes=len(envelope.keyframes),
            base_volume=base,
            duck_volume=duck,
        )
        return envelope
