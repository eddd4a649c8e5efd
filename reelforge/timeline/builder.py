"""Scene timeline layout.

Places scenes on an absolute frame grid and works out the transition
windows between neighbours:

- scene frames are ``round(duration_seconds * fps)``
- a transition of ``t`` frames overlaps the two scenes by ``t // 2``
- ``t`` is clamped to ``min(d_i, d_next)`` so the overlap never exceeds
  half the shorter scene; clamping is reported, never fatal
- ``start_0 = 0`` and ``start_next = end_i - overlap_i``

Pure: identical input always yields an identical layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from reelforge.common.errors import ConfigurationError, TimelineInvariantViolation
from reelforge.common.logging import get_logger
from reelforge.common.models import (
    PlanWarning,
    Scene,
    SceneFrameRange,
    TransitionSpec,
    TransitionType,
    TransitionWindow,
)

logger = get_logger(__name__)

CUT = TransitionSpec(type=TransitionType.CUT, duration_seconds=0.0)


@dataclass
class TimelineLayout:
    """Result of laying out scenes."""

    fps: int
    scene_ranges: list[SceneFrameRange] = field(default_factory=list)
    transitions: list[TransitionWindow] = field(default_factory=list)
    content_frames: int = 0
    warnings: list[PlanWarning] = field(default_factory=list)

    @property
    def scene_frames_total(self) -> int:
        return sum(r.duration_frames for r in self.scene_ranges)

    @property
    def overlap_frames_total(self) -> int:
        return sum(t.overlap_frames for t in self.transitions)

    def range_for(self, scene_id: str) -> SceneFrameRange:
        for r in self.scene_ranges:
            if r.scene_id == scene_id:
                return r
        raise KeyError(scene_id)


def seconds_to_frames(seconds: float, fps: int) -> int:
    return int(round(seconds * fps))


def scene_duration_frames(scene: Scene, fps: int) -> int:
    """Frame count for a scene; rejects durations that don't yield a frame."""
    if scene.duration_seconds <= 0:
        raise ConfigurationError(
            f"Scene {scene.id} has non-positive duration {scene.duration_seconds}",
            {"scene_id": scene.id, "duration_seconds": scene.duration_seconds},
        )
    frames = seconds_to_frames(scene.duration_seconds, fps)
    if frames < 1:
        raise ConfigurationError(
            f"Scene {scene.id} is shorter than one frame at {fps} fps",
            {"scene_id": scene.id, "duration_seconds": scene.duration_seconds},
        )
    return frames


def boundary_transition(
    outgoing: Scene, incoming: Scene
) -> tuple[TransitionSpec, PlanWarning | None]:
    """Transition between two scenes: outgoing's ``transition_out`` wins."""
    out_spec, in_spec = outgoing.transition_out, incoming.transition_in
    if out_spec is not None and in_spec is not None and out_spec != in_spec:
        warning = PlanWarning(
            code="transition_conflict",
            message=(
                f"{outgoing.id} transition_out ({out_spec.type.value}) overrides "
                f"{incoming.id} transition_in ({in_spec.type.value})"
            ),
            scene_id=incoming.id,
        )
        return out_spec, warning
    return out_spec or in_spec or CUT, None


def order_scenes(scenes: Sequence[Scene]) -> list[Scene]:
    """Scenes sorted by ``order``; duplicate ids or order indices are rejected."""
    seen_ids: set[str] = set()
    seen_orders: set[int] = set()
    for scene in scenes:
        if scene.id in seen_ids:
            raise ConfigurationError(f"Duplicate scene id: {scene.id}", {"scene_id": scene.id})
        if scene.order in seen_orders:
            raise ConfigurationError(
                f"Duplicate scene order index: {scene.order}",
                {"scene_id": scene.id, "order": scene.order},
            )
        seen_ids.add(scene.id)
        seen_orders.add(scene.order)
    return sorted(scenes, key=lambda s: s.order)


def validate_scenes(scenes: Sequence[Scene], fps: int) -> list[Scene]:
    """Ordered scenes, or ConfigurationError if any could not be laid out."""
    if fps <= 0:
        raise ConfigurationError(f"fps must be positive, got {fps}", {"fps": fps})
    ordered = order_scenes(scenes)
    for scene in ordered:
        scene_duration_frames(scene, fps)
    return ordered


def build_timeline(scenes: Sequence[Scene], fps: int) -> TimelineLayout:
    """Lay ``scenes`` out on the frame grid."""
    if fps <= 0:
        raise ConfigurationError(f"fps must be positive, got {fps}", {"fps": fps})

    ordered = order_scenes(scenes)
    layout = TimelineLayout(fps=fps)
    if not ordered:
        return layout

    durations = [scene_duration_frames(s, fps) for s in ordered]

    # Step 1: transition windows sizes (clamped)
    sized: list[tuple[TransitionSpec, int, int, bool]] = []
    for i in range(len(ordered) - 1):
        outgoing, incoming = ordered[i], ordered[i + 1]
        spec, conflict = boundary_transition(outgoing, incoming)
        if conflict:
            layout.warnings.append(conflict)
            logger.warning("transition_conflict", scene_id=incoming.id)

        requested = 0 if spec.is_cut else seconds_to_frames(spec.duration_seconds, fps)
        limit = min(durations[i], durations[i + 1])
        realized = min(requested, limit)
        clamped = realized < requested
        if clamped:
            violation = TimelineInvariantViolation(
                f"Transition {outgoing.id}->{incoming.id} clamped from "
                f"{requested} to {realized} frames",
                {"requested_frames": requested, "realized_frames": realized},
            )
            layout.warnings.append(
                PlanWarning(
                    code="transition_clamped",
                    message=violation.message,
                    scene_id=outgoing.id,
                )
            )
            logger.warning("transition_clamped", **violation.to_dict())
        sized.append((spec, requested, realized, clamped))

    # Step 2: place scenes
    start = 0
    for i, scene in enumerate(ordered):
        end = start + durations[i]
        layout.scene_ranges.append(
            SceneFrameRange(scene_id=scene.id, index=i, start_frame=start, end_frame=end)
        )
        if i < len(sized):
            spec, requested, realized, clamped = sized[i]
            overlap = realized // 2
            next_start = end - overlap
            layout.transitions.append(
                TransitionWindow(
                    from_scene_id=scene.id,
                    to_scene_id=ordered[i + 1].id,
                    spec=spec,
                    requested_frames=requested,
                    realized_frames=realized,
                    overlap_frames=overlap,
                    start_frame=next_start,
                    end_frame=end,
                    clamped=clamped,
                )
            )
            start = next_start

    layout.content_frames = layout.scene_ranges[-1].end_frame

    logger.debug(
        "timeline_built",
        scenes=len(layout.scene_ranges),
        content_frames=layout.content_frames,
        overlap_frames=layout.overlap_frames_total,
        warnings=len(layout.warnings),
    )
    return layout
