"""Render plan: the engine's final output."""

from __future__ import annotations

from collections import Counter
from typing import Any

from pydantic import Field

from reelforge.common.models.audio import AudioEnvelope
from reelforge.common.models.base import FrozenModel
from reelforge.common.models.task import SceneOutcome
from reelforge.common.models.timeline import (
    LayerType,
    PlanWarning,
    SceneError,
    SceneFrameRange,
    TimelineEntry,
    TransitionWindow,
)


class EndCardSpec(FrozenModel):
    """Trailing brand/CTA card appended after the last scene."""

    duration_seconds: float = Field(default=5.0, ge=0.0)
    headline: str = ""
    cta_text: str = ""
    logo_uri: str | None = None
    background: str = "#000000"


class MusicTrackSpec(FrozenModel):
    """Background music bed that gets ducked under narration."""

    uri: str
    base_volume: float | None = Field(default=None, ge=0.0, le=1.0)
    duck_volume: float | None = Field(default=None, ge=0.0, le=1.0)


class PlanMetadata(FrozenModel):
    fps: int
    width: int
    height: int
    total_frames: int
    content_frames: int
    end_card_frames: int = 0
    scene_count: int

    @property
    def duration_seconds(self) -> float:
        return self.total_frames / self.fps


class RenderPlan(FrozenModel):
    """Ordered, frame-accurate timeline handed to the renderer."""

    metadata: PlanMetadata
    entries: list[TimelineEntry] = Field(default_factory=list)
    scene_ranges: list[SceneFrameRange] = Field(default_factory=list)
    transitions: list[TransitionWindow] = Field(default_factory=list)
    audio_envelopes: list[AudioEnvelope] = Field(default_factory=list)
    scene_outcomes: dict[str, SceneOutcome] = Field(default_factory=dict)
    warnings: list[PlanWarning] = Field(default_factory=list)
    errors: list[SceneError] = Field(default_factory=list)

    @property
    def total_frames(self) -> int:
        return self.metadata.total_frames

    def entries_for_scene(self, scene_id: str) -> list[TimelineEntry]:
        return [e for e in self.entries if e.scene_id == scene_id]

    def entries_on(self, layer: LayerType) -> list[TimelineEntry]:
        return [e for e in self.entries if e.layer == layer]

    def envelope(self, track_id: str) -> AudioEnvelope | None:
        for env in self.audio_envelopes:
            if env.track_id == track_id:
                return env
        return None

    def report(self) -> dict[str, Any]:
        """Warnings/errors report for operators."""
        outcome_counts = Counter(o.value for o in self.scene_outcomes.values())
        return {
            "total_frames": self.metadata.total_frames,
            "duration_seconds": round(self.metadata.duration_seconds, 3),
            "scene_count": self.metadata.scene_count,
            "entry_count": len(self.entries),
            "outcomes": dict(outcome_counts),
            "placeholder_scenes": [e.scene_id for e in self.errors],
            "warnings": [w.model_dump(mode="json") for w in self.warnings],
            "errors": [e.model_dump(mode="json") for e in self.errors],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent)
