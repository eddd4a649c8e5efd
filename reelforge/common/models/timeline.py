"""Timeline records: frame ranges, transition windows and entries."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, model_validator

from reelforge.common.models.base import FrozenModel
from reelforge.common.models.scene import TransitionSpec


class LayerType(str, Enum):
    """Timeline layers, listed in render stacking order."""

    VIDEO = "video"
    TRANSITION = "transition"
    TEXT_OVERLAY = "text-overlay"
    END_CARD = "end-card"
    AUDIO = "audio"

    @property
    def rank(self) -> int:
        return LAYER_RANK[self]


LAYER_RANK = {
    LayerType.VIDEO: 0,
    LayerType.TRANSITION: 1,
    LayerType.TEXT_OVERLAY: 2,
    LayerType.END_CARD: 3,
    LayerType.AUDIO: 4,
}


class Keyframe(FrozenModel):
    """Parameter values at an absolute frame."""

    frame: int = Field(ge=0)
    values: dict[str, Any] = Field(default_factory=dict)


class SceneFrameRange(FrozenModel):
    """Absolute placement of a scene. ``end_frame`` is exclusive."""

    scene_id: str
    index: int
    start_frame: int = Field(ge=0)
    end_frame: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "SceneFrameRange":
        if self.start_frame > self.end_frame:
            raise ValueError("start_frame must not exceed end_frame")
        return self

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame


class TransitionWindow(FrozenModel):
    """Overlap between two adjacent scenes."""

    from_scene_id: str
    to_scene_id: str
    spec: TransitionSpec
    requested_frames: int = Field(ge=0)
    realized_frames: int = Field(ge=0)
    overlap_frames: int = Field(ge=0)
    start_frame: int = Field(ge=0)
    end_frame: int = Field(ge=0)
    clamped: bool = False

    @property
    def is_cut(self) -> bool:
        return self.overlap_frames == 0


class PlanWarning(FrozenModel):
    """Something that was corrected or is worth a look."""

    code: str
    message: str
    scene_id: str | None = None


class SceneError(FrozenModel):
    """A scene that ended without real media."""

    scene_id: str
    code: str
    message: str


class TimelineEntry(FrozenModel):
    """One item on the render timeline."""

    entry_id: str
    layer: LayerType
    start_frame: int = Field(ge=0)
    end_frame: int = Field(ge=0)
    scene_id: str | None = None
    scene_index: int = -1
    source_uri: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    keyframes: list[Keyframe] = Field(default_factory=list)
    placeholder: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> "TimelineEntry":
        if self.start_frame > self.end_frame:
            raise ValueError(
                f"entry {self.entry_id}: start_frame {self.start_frame} > end_frame {self.end_frame}"
            )
        return self

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame

    def sort_key(self) -> tuple[int, int, int, str]:
        return (self.start_frame, self.layer.rank, self.scene_index, self.entry_id)
