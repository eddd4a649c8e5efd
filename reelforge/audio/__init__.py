"""Audio mixing: narration-driven music ducking."""

from reelforge.audio.mixer import (
    MUSIC_TRACK_ID,
    AudioMixEngine,
    DuckingConfig,
    check_levels,
    clip_envelope,
    duck_envelope,
    merge_intervals,
)

__all__ = [
    "MUSIC_TRACK_ID",
    "AudioMixEngine",
    "DuckingConfig",
    "check_levels",
    "clip_envelope",
    "duck_envelope",
    "merge_intervals",
]
