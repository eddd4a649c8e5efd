"""Data models for the reelforge engine."""

from reelforge.common.models.base import FrozenModel, generate_id, stable_id
from reelforge.common.models.scene import (
    ContentType,
    MediaReference,
    NarrationSpec,
    Scene,
    SoundEventSpec,
    TextOverlaySpec,
    TransitionDirection,
    TransitionSpec,
    TransitionType,
)
from reelforge.common.models.provider import (
    ALL_STYLES,
    ProviderCapability,
    ProviderKind,
    QualityTier,
)
from reelforge.common.models.task import (
    GenerationRequest,
    GenerationTask,
    SceneOutcome,
    StatusChange,
    TaskStatus,
    TERMINAL_STATUSES,
)
from reelforge.common.models.timeline import (
    Keyframe,
    LayerType,
    PlanWarning,
    SceneError,
    SceneFrameRange,
    TimelineEntry,
    TransitionWindow,
)
from reelforge.common.models.audio import (
    AudioEnvelope,
    VoiceInterval,
    VolumeKeyframe,
)
from reelforge.common.models.plan import (
    EndCardSpec,
    MusicTrackSpec,
    PlanMetadata,
    RenderPlan,
)

__all__ = [
    # Base
    "FrozenModel",
    "generate_id",
    "stable_id",
    # Scene
    "ContentType",
    "MediaReference",
    "NarrationSpec",
    "Scene",
    "SoundEventSpec",
    "TextOverlaySpec",
    "TransitionDirection",
    "TransitionSpec",
    "TransitionType",
    # Provider
    "ALL_STYLES",
    "ProviderCapability",
    "ProviderKind",
    "QualityTier",
    # Task
    "GenerationRequest",
    "GenerationTask",
    "SceneOutcome",
    "StatusChange",
    "TaskStatus",
    "TERMINAL_STATUSES",
    # Timeline
    "Keyframe",
    "LayerType",
    "PlanWarning",
    "SceneError",
    "SceneFrameRange",
    "TimelineEntry",
    "TransitionWindow",
    # Audio
    "AudioEnvelope",
    "VoiceInterval",
    "VolumeKeyframe",
    # Plan
    "EndCardSpec",
    "MusicTrackSpec",
    "PlanMetadata",
    "RenderPlan",
]
