"""Render plan assembly.

Combines resolved scenes, the timeline layout, transition keyframes, text
overlays and audio into one ordered RenderPlan:

1. Lay scenes out on the frame grid (transitions clamped if needed)
2. One video entry per scene, placeholders flagged but never dropped
3. Transition entries with per-frame blend keyframes
4. Text overlays re-based to the scene's absolute start
5. Narration, ducked music and one-shot sound events
6. Optional end card after the last scene
7. Stable ordering, then invariant validation

Entry ids derive from scene ids only, so re-assembling after one scene is
regenerated leaves every other entry unchanged.
"""

from __future__ import annotations

from typing import Mapping, Sequence

from pydantic import Field

from reelforge.audio.mixer import MUSIC_TRACK_ID, AudioMixEngine, DuckingConfig
from reelforge.common.config import Settings, get_settings
from reelforge.common.errors import ConfigurationError
from reelforge.common.logging import get_logger
from reelforge.common.models import (
    EndCardSpec,
    FrozenModel,
    Keyframe,
    LayerType,
    MusicTrackSpec,
    PlanMetadata,
    PlanWarning,
    RenderPlan,
    Scene,
    SceneError,
    SceneFrameRange,
    SceneOutcome,
    TimelineEntry,
    VoiceInterval,
    stable_id,
)
from reelforge.orchestration.placeholder import placeholder_uri
from reelforge.timeline.builder import (
    TimelineLayout,
    build_timeline,
    order_scenes,
    seconds_to_frames,
    validate_scenes,
)
from reelforge.timeline.transitions import sample_window
from reelforge.assembly.validation import validate_render_plan

logger = get_logger(__name__)


class AssemblyConfig(FrozenModel):
    """Output format and audio levels for assembly."""

    fps: int = 30
    width: int = 1920
    height: int = 1080
    ducking: DuckingConfig = Field(default_factory=DuckingConfig)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AssemblyConfig":
        return cls(
            fps=settings.fps,
            width=settings.width,
            height=settings.height,
            ducking=DuckingConfig.from_settings(settings),
        )


class RenderPlanAssembler:
    """Builds and validates the render plan."""

    def __init__(self, config: AssemblyConfig | None = None):
        self.config = config or AssemblyConfig.from_settings(get_settings())
        if self.config.fps <= 0 or self.config.width <= 0 or self.config.height <= 0:
            raise ConfigurationError(
                "fps, width and height must be positive",
                {
                    "fps": self.config.fps,
                    "width": self.config.width,
                    "height": self.config.height,
                },
            )
        self.mixer = AudioMixEngine(self.config.ducking, self.config.fps)

    def check_inputs(
        self, scenes: Sequence[Scene], music: MusicTrackSpec | None = None
    ) -> None:
        """Raise ConfigurationError for input ``assemble`` would reject.

        Lets a caller fail before any generation work is dispatched.
        """
        if not scenes:
            raise ConfigurationError("Cannot assemble a plan without scenes")
        validate_scenes(scenes, self.config.fps)
        if music is not None:
            self.mixer.resolve_levels(music.base_volume, music.duck_volume)

    def assemble(
        self,
        scenes: Sequence[Scene],
        outcomes: Mapping[str, SceneOutcome] | None = None,
        music: MusicTrackSpec | None = None,
        end_card: EndCardSpec | None = None,
    ) -> RenderPlan:
        """Assemble a render plan for ``scenes`` (any order; sorted by ``order``).

        Raises:
            ConfigurationError: invalid durations, levels or output format.
        """
        if not scenes:
            raise ConfigurationError("Cannot assemble a plan without scenes")

        fps = self.config.fps
        ordered = order_scenes(scenes)

        # Step 1: layout
        layout = build_timeline(ordered, fps)
        warnings: list[PlanWarning] = list(layout.warnings)
        errors: list[SceneError] = []

        end_card_frames = seconds_to_frames(end_card.duration_seconds, fps) if end_card else 0
        total_frames = layout.content_frames + end_card_frames

        entries: list[TimelineEntry] = []
        resolved_outcomes: dict[str, SceneOutcome] = {}

        # Step 2: video
        for scene, scene_range in zip(ordered, layout.scene_ranges):
            entry, error = self._video_entry(scene, scene_range)
            entries.append(entry)
            if error:
                errors.append(error)
            resolved_outcomes[scene.id] = _outcome_for(scene, outcomes)

        # Step 3: transitions
        index_of = {s.id: i for i, s in enumerate(ordered)}
        for window in layout.transitions:
            if window.overlap_frames == 0:
                continue
            entries.append(
                TimelineEntry(
                    entry_id=stable_id("transition", window.from_scene_id, window.to_scene_id),
                    layer=LayerType.TRANSITION,
                    start_frame=window.start_frame,
                    end_frame=window.end_frame,
                    scene_id=window.from_scene_id,
                    scene_index=index_of[window.from_scene_id],
                    params={
                        "type": window.spec.type.value,
                        "direction": window.spec.direction.value,
                        "style": window.spec.style,
                        "from_scene_id": window.from_scene_id,
                        "to_scene_id": window.to_scene_id,
                        "requested_frames": window.requested_frames,
                        "realized_frames": window.realized_frames,
                        "clamped": window.clamped,
                    },
                    keyframes=sample_window(window),
                )
            )

        # Step 4: text overlays
        for scene, scene_range in zip(ordered, layout.scene_ranges):
            overlay_entries, overlay_warnings = self._overlay_entries(scene, scene_range)
            entries.extend(overlay_entries)
            warnings.extend(overlay_warnings)

        # Step 5: audio
        voice_intervals = self.mixer.voice_intervals(ordered, layout)
        entries.extend(self._voice_entries(ordered, voice_intervals, index_of))
        audio_envelopes = []
        if music is not None:
            envelope = self.mixer.music_envelope(
                voice_intervals,
                total_frames,
                base_volume=music.base_volume,
                duck_volume=music.duck_volume,
            )
            audio_envelopes.append(envelope)
            entries.append(self._music_entry(music, envelope.keyframes, total_frames))
        sfx_entries, sfx_warnings = self._sound_event_entries(ordered, layout, total_frames)
        entries.extend(sfx_entries)
        warnings.extend(sfx_warnings)

        # Step 6: end card
        if end_card_frames > 0:
            entries.append(
                TimelineEntry(
                    entry_id=stable_id("end-card"),
                    layer=LayerType.END_CARD,
                    start_frame=layout.content_frames,
                    end_frame=total_frames,
                    scene_index=len(ordered),
                    source_uri=end_card.logo_uri,
                    params={
                        "headline": end_card.headline,
                        "cta_text": end_card.cta_text,
                        "background": end_card.background,
                    },
                )
            )

        # Step 7: order and validate
        entries.sort(key=lambda e: e.sort_key())

        plan = RenderPlan(
            metadata=PlanMetadata(
                fps=fps,
                width=self.config.width,
                height=self.config.height,
                total_frames=total_frames,
                content_frames=layout.content_frames,
                end_card_frames=end_card_frames,
                scene_count=len(ordered),
            ),
            entries=entries,
            scene_ranges=layout.scene_ranges,
            transitions=layout.transitions,
            audio_envelopes=audio_envelopes,
            scene_outcomes=resolved_outcomes,
            warnings=warnings,
            errors=errors,
        )

        issues = validate_render_plan(plan)
        if issues:
            logger.error("render_plan_invalid", issues=issues)
            raise ConfigurationError("Render plan failed validation", {"issues": issues})

        logger.info(
            "render_plan_assembled",
            total_frames=total_frames,
            scenes=len(ordered),
            entries=len(entries),
            warnings=len(warnings),
            placeholder_scenes=len(errors),
        )
        return plan

    # -------------------------------------------------------------------------
    # Entry builders
    # -------------------------------------------------------------------------

    def _video_entry(
        self, scene: Scene, scene_range: SceneFrameRange
    ) -> tuple[TimelineEntry, SceneError | None]:
        media = scene.media
        is_placeholder = media is None or media.is_placeholder
        error = None

        if is_placeholder:
            if scene.generation_error == "cancelled":
                code = "cancelled"
            elif scene.generation_error is not None:
                code = "placeholder_failed"
            else:
                code = "unresolved"
            error = SceneError(
                scene_id=scene.id,
                code=code,
                message=scene.generation_error or "no media resolved before assembly",
            )

        entry = TimelineEntry(
            entry_id=stable_id("video", scene.id),
            layer=LayerType.VIDEO,
            start_frame=scene_range.start_frame,
            end_frame=scene_range.end_frame,
            scene_id=scene.id,
            scene_index=scene_range.index,
            source_uri=media.uri if media else placeholder_uri(scene.id),
            params={
                "content_type": scene.content_type.value,
                "style": scene.style,
                "provider_id": media.provider_id if media else None,
            },
            placeholder=is_placeholder,
        )
        return entry, error

    def _overlay_entries(
        self, scene: Scene, scene_range: SceneFrameRange
    ) -> tuple[list[TimelineEntry], list[PlanWarning]]:
        fps = self.config.fps
        entries, warnings = [], []

        for n, overlay in enumerate(scene.text_overlays):
            start = scene_range.start_frame + seconds_to_frames(overlay.start_seconds, fps)
            if start >= scene_range.end_frame:
                warnings.append(
                    PlanWarning(
                        code="overlay_dropped",
                        message=f"Overlay {n} starts after scene {scene.id} ends",
                        scene_id=scene.id,
                    )
                )
                continue

            # None or a negative duration runs to the end of the scene
            if overlay.duration_seconds is None or overlay.duration_seconds < 0:
                end = scene_range.end_frame
            else:
                end = start + seconds_to_frames(overlay.duration_seconds, fps)
                if end > scene_range.end_frame:
                    warnings.append(
                        PlanWarning(
                            code="overlay_clipped",
                            message=f"Overlay {n} clipped to the end of scene {scene.id}",
                            scene_id=scene.id,
                        )
                    )
                    end = scene_range.end_frame
            if end <= start:
                warnings.append(
                    PlanWarning(
                        code="overlay_dropped",
                        message=f"Overlay {n} of scene {scene.id} is shorter than a frame",
                        scene_id=scene.id,
                    )
                )
                continue

            entries.append(
                TimelineEntry(
                    entry_id=stable_id("text", scene.id, n),
                    layer=LayerType.TEXT_OVERLAY,
                    start_frame=start,
                    end_frame=end,
                    scene_id=scene.id,
                    scene_index=scene_range.index,
                    params={
                        "text": overlay.text,
                        "position": overlay.position,
                        "style": dict(overlay.style),
                    },
                )
            )
        return entries, warnings

    def _voice_entries(
        self,
        scenes: Sequence[Scene],
        intervals: Sequence[VoiceInterval],
        index_of: Mapping[str, int],
    ) -> list[TimelineEntry]:
        by_id = {s.id: s for s in scenes}
        entries = []
        for interval in intervals:
            scene = by_id[interval.scene_id]
            entries.append(
                TimelineEntry(
                    entry_id=stable_id("voice", scene.id),
                    layer=LayerType.AUDIO,
                    start_frame=interval.start_frame,
                    end_frame=interval.end_frame,
                    scene_id=scene.id,
                    scene_index=index_of[scene.id],
                    source_uri=scene.narration.uri,
                    params={"track": "voice", "volume": scene.narration.volume},
                )
            )
        return entries

    def _music_entry(
        self, music: MusicTrackSpec, keyframes, total_frames: int
    ) -> TimelineEntry:
        base, duck = self.mixer.resolve_levels(music.base_volume, music.duck_volume)
        return TimelineEntry(
            entry_id=stable_id("music"),
            layer=LayerType.AUDIO,
            start_frame=0,
            end_frame=total_frames,
            source_uri=music.uri,
            params={
                "track": "music",
                "envelope_id": MUSIC_TRACK_ID,
                "base_volume": base,
                "duck_volume": duck,
                "ramp_in_frames": self.mixer.ramp_in_frames,
                "ramp_out_frames": self.mixer.ramp_out_frames,
            },
            keyframes=[Keyframe(frame=k.frame, values={"volume": k.volume}) for k in keyframes],
        )

    def _sound_event_entries(
        self, scenes: Sequence[Scene], layout: TimelineLayout, total_frames: int
    ) -> tuple[list[TimelineEntry], list[PlanWarning]]:
        fps = self.config.fps
        entries, warnings = [], []
        for scene, scene_range in zip(scenes, layout.scene_ranges):
            for n, event in enumerate(scene.sound_events):
                start = scene_range.start_frame + seconds_to_frames(event.offset_seconds, fps)
                if start >= total_frames:
                    warnings.append(
                        PlanWarning(
                            code="sound_event_dropped",
                            message=f"Sound event {event.sound_id} starts after the plan ends",
                            scene_id=scene.id,
                        )
                    )
                    continue
                end = min(total_frames, start + max(1, seconds_to_frames(event.duration_seconds, fps)))
                entries.append(
                    TimelineEntry(
                        entry_id=stable_id("sfx", scene.id, n),
                        layer=LayerType.AUDIO,
                        start_frame=start,
                        end_frame=end,
                        scene_id=scene.id,
                        scene_index=scene_range.index,
                        source_uri=event.uri,
                        params={
                            "track": "sfx",
                            "sound_id": event.sound_id,
                            "category": event.category,
                            "volume": event.volume,
                        },
                    )
                )
        return entries, warnings


def _outcome_for(scene: Scene, outcomes: Mapping[str, SceneOutcome] | None) -> SceneOutcome:
    if scene.media is None or scene.media.is_placeholder:
        return SceneOutcome.PLACEHOLDER_FAILED
    if outcomes and scene.id in outcomes:
        return outcomes[scene.id]
    return SceneOutcome.RESOLVED_PRIMARY
