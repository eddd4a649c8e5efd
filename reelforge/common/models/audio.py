"""Audio envelope records."""

from __future__ import annotations

from pydantic import Field, model_validator

from reelforge.common.models.base import FrozenModel


class VolumeKeyframe(FrozenModel):
    frame: int = Field(ge=0)
    volume: float = Field(ge=0.0, le=1.0)


class VoiceInterval(FrozenModel):
    """Frames ``[start_frame, end_frame)`` where a voice is speaking."""

    start_frame: int = Field(ge=0)
    end_frame: int = Field(ge=0)
    scene_id: str | None = None

    @model_validator(mode="after")
    def _check_order(self) -> "VoiceInterval":
        if self.start_frame > self.end_frame:
            raise ValueError("voice interval start must not exceed its end")
        return self


class AudioEnvelope(FrozenModel):
    """Piecewise-linear volume curve for a track.

    Keyframes are ordered by frame. Two keyframes on the same frame form an
    instantaneous step; the later one wins from that frame on.
    """

    track_id: str
    keyframes: list[VolumeKeyframe]

    @model_validator(mode="after")
    def _check_monotonic(self) -> "AudioEnvelope":
        if not self.keyframes:
            raise ValueError("envelope needs at least one keyframe")
        frames = [k.frame for k in self.keyframes]
        if any(b < a for a, b in zip(frames, frames[1:])):
            raise ValueError("envelope keyframes must be ordered by frame")
        return self

    def volume_at(self, frame: float) -> float:
        """Linearly interpolated volume at ``frame``."""
        keys = self.keyframes
        if frame < keys[0].frame:
            return keys[0].volume
        if frame >= keys[-1].frame:
            return keys[-1].volume

        for left, right in zip(keys, keys[1:]):
            if left.frame <= frame < right.frame:
                span = right.frame - left.frame
                t = (frame - left.frame) / span
                return left.volume + (right.volume - left.volume) * t
        return keys[-1].volume
