"""Unit tests for timeline layout."""

import random

import pytest

from reelforge.common.errors import ConfigurationError
from reelforge.common.models import TransitionSpec, TransitionType
from reelforge.timeline import build_timeline, order_scenes, seconds_to_frames, validate_scenes


def _dissolve(seconds: float = 1.0) -> TransitionSpec:
    return TransitionSpec(type=TransitionType.DISSOLVE, duration_seconds=seconds)


class TestBuildTimeline:
    """Tests for build_timeline."""

    def test_overlapping_dissolves(self, three_scenes):
        """Test three 5s scenes with 1s dissolves at 30fps."""
        layout = build_timeline(three_scenes, fps=30)

        ranges = [(r.start_frame, r.end_frame) for r in layout.scene_ranges]
        assert ranges == [(0, 150), (135, 285), (270, 420)]
        assert layout.content_frames == 420
        assert [(t.start_frame, t.end_frame) for t in layout.transitions] == [
            (135, 150),
            (270, 285),
        ]
        assert all(t.overlap_frames == 15 for t in layout.transitions)
        assert layout.warnings == []

    def test_cuts_butt_together(self, make_scene):
        scenes = [make_scene("a", 0), make_scene("b", 1, duration=2.0)]

        layout = build_timeline(scenes, fps=30)

        assert [(r.start_frame, r.end_frame) for r in layout.scene_ranges] == [(0, 150), (150, 210)]
        assert layout.transitions[0].is_cut
        assert layout.content_frames == 210

    def test_single_scene(self, make_scene):
        layout = build_timeline([make_scene()], fps=24)
        assert layout.content_frames == 120
        assert layout.transitions == []

    def test_empty_input(self):
        layout = build_timeline([], fps=30)
        assert layout.content_frames == 0
        assert layout.scene_ranges == []

    def test_order_not_list_position(self, make_scene):
        scenes = [make_scene("second", 1), make_scene("first", 0)]
        layout = build_timeline(scenes, fps=30)
        assert [r.scene_id for r in layout.scene_ranges] == ["first", "second"]

    def test_transition_clamped_to_shorter_scene(self, make_scene):
        """Test a 1s transition into a 0.5s scene is cut down and reported."""
        scenes = [
            make_scene("long", 0, transition_out=_dissolve(1.0)),
            make_scene("short", 1, duration=0.5),
        ]

        layout = build_timeline(scenes, fps=30)

        window = layout.transitions[0]
        assert window.requested_frames == 30
        assert window.realized_frames == 15
        assert window.overlap_frames == 7
        assert window.clamped
        assert [w.code for w in layout.warnings] == ["transition_clamped"]
        assert layout.scene_ranges[1].start_frame == 143

    def test_odd_transition_overlap_rounds_down(self, make_scene):
        scenes = [
            make_scene("a", 0, transition_out=_dissolve(0.5)),
            make_scene("b", 1),
        ]
        window = build_timeline(scenes, fps=30).transitions[0]
        assert (window.realized_frames, window.overlap_frames) == (15, 7)

    def test_outgoing_transition_wins(self, make_scene):
        """Test transition_out beats a different transition_in, with a warning."""
        fade = TransitionSpec(type=TransitionType.FADE, duration_seconds=0.5)
        scenes = [
            make_scene("a", 0, transition_out=_dissolve(1.0)),
            make_scene("b", 1, transition_in=fade),
        ]

        layout = build_timeline(scenes, fps=30)

        assert layout.transitions[0].spec.type == TransitionType.DISSOLVE
        assert layout.warnings[0].code == "transition_conflict"
        assert layout.warnings[0].scene_id == "b"

    def test_incoming_transition_used_alone(self, make_scene):
        fade = TransitionSpec(type=TransitionType.FADE, duration_seconds=0.5)
        scenes = [make_scene("a", 0), make_scene("b", 1, transition_in=fade)]

        layout = build_timeline(scenes, fps=30)

        assert layout.transitions[0].spec == fade
        assert layout.transitions[0].overlap_frames == 7
        assert layout.warnings == []

    def test_zero_duration_rejected(self, make_scene):
        with pytest.raises(ConfigurationError):
            build_timeline([make_scene(duration=0.0)], fps=30)

    def test_sub_frame_duration_rejected(self, make_scene):
        with pytest.raises(ConfigurationError):
            build_timeline([make_scene(duration=0.01)], fps=30)

    def test_invalid_fps(self, make_scene):
        with pytest.raises(ConfigurationError):
            build_timeline([make_scene()], fps=0)

    def test_duplicate_ids_and_orders(self, make_scene):
        with pytest.raises(ConfigurationError):
            order_scenes([make_scene("a", 0), make_scene("a", 1)])
        with pytest.raises(ConfigurationError):
            order_scenes([make_scene("a", 0), make_scene("b", 0)])

    def test_validate_scenes(self, make_scene):
        scenes = [make_scene("b", 1), make_scene("a", 0)]
        assert [s.id for s in validate_scenes(scenes, 30)] == ["a", "b"]
        with pytest.raises(ConfigurationError):
            validate_scenes([make_scene("a", 0), make_scene("b", 1, duration=-3.0)], 30)
        with pytest.raises(ConfigurationError):
            validate_scenes(scenes, 0)

    def test_deterministic(self, three_scenes):
        assert build_timeline(three_scenes, 30) == build_timeline(three_scenes, 30)

    def test_seconds_to_frames(self):
        assert seconds_to_frames(1.0, 30) == 30
        assert seconds_to_frames(0.3, 30) == 9
        assert seconds_to_frames(4.7, 24) == 113

    def test_layout_invariants_randomized(self, make_scene):
        """Randomized: contiguity, overlap bound and total length always hold."""
        rng = random.Random(42)
        types = list(TransitionType)

        for _ in range(300):
            fps = rng.choice([24, 25, 30, 60])
            count = rng.randint(1, 8)
            scenes = []
            for i in range(count):
                spec = None
                if rng.random() < 0.7:
                    spec = TransitionSpec(
                        type=rng.choice(types), duration_seconds=rng.uniform(0, 3)
                    )
                scenes.append(
                    make_scene(
                        f"s{i}",
                        i,
                        duration=rng.uniform(0.2, 8.0),
                        transition_out=spec,
                    )
                )

            layout = build_timeline(scenes, fps)

            ranges = layout.scene_ranges
            assert ranges[0].start_frame == 0
            for scene, r in zip(scenes, ranges):
                assert r.duration_frames == seconds_to_frames(scene.duration_seconds, fps)
            for i, window in enumerate(layout.transitions):
                shorter = min(ranges[i].duration_frames, ranges[i + 1].duration_frames)
                assert window.realized_frames <= shorter
                assert 2 * window.overlap_frames <= shorter
                assert ranges[i + 1].start_frame == ranges[i].end_frame - window.overlap_frames
                assert window.end_frame == ranges[i].end_frame
                assert window.end_frame - window.start_frame == window.overlap_frames
            assert layout.content_frames == (
                layout.scene_frames_total - layout.overlap_frames_total
            )
