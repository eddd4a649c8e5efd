"""Scene timeline layout and transitions."""

from reelforge.timeline.builder import (
    TimelineLayout,
    boundary_transition,
    build_timeline,
    order_scenes,
    scene_duration_frames,
    seconds_to_frames,
    validate_scenes,
)
from reelforge.timeline.transitions import (
    EASINGS,
    BlendParameters,
    blend,
    sample_window,
    window_progress,
)

__all__ = [
    # Layout
    "TimelineLayout",
    "boundary_transition",
    "build_timeline",
    "order_scenes",
    "scene_duration_frames",
    "seconds_to_frames",
    "validate_scenes",
    # Transitions
    "EASINGS",
    "BlendParameters",
    "blend",
    "sample_window",
    "window_progress",
]
