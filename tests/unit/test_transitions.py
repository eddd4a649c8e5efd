"""Unit tests for transition blend parameters."""

import math

import pytest

from reelforge.common.models import (
    TransitionDirection,
    TransitionSpec,
    TransitionType,
    TransitionWindow,
)
from reelforge.timeline import EASINGS, blend, sample_window, window_progress


def _spec(kind: TransitionType, **kwargs) -> TransitionSpec:
    return TransitionSpec(type=kind, duration_seconds=1.0, **kwargs)


class TestBlend:
    """Tests for blend()."""

    @pytest.mark.parametrize("kind", list(TransitionType))
    def test_dominance_switches_at_midpoint(self, kind):
        spec = _spec(kind)
        assert blend(spec, 0.0).dominant == "outgoing"
        assert blend(spec, 0.4999).dominant == "outgoing"
        assert blend(spec, 0.5).dominant == "incoming"
        assert blend(spec, 1.0).dominant == "incoming"

    @pytest.mark.parametrize("kind", list(TransitionType))
    def test_mirror_symmetry(self, kind):
        """Test the incoming layer at 1-p mirrors the outgoing layer at p."""
        spec = _spec(kind, direction=TransitionDirection.UP)
        for p in (0.0, 0.1, 0.25, 0.4):
            out = blend(spec, p)
            inc = blend(spec, 1 - p)
            assert inc.incoming_opacity == pytest.approx(out.outgoing_opacity)
            assert inc.incoming_offset_x == pytest.approx(-out.outgoing_offset_x)
            assert inc.incoming_offset_y == pytest.approx(-out.outgoing_offset_y)
            assert inc.incoming_scale - 1 == pytest.approx(-(out.outgoing_scale - 1))
            assert inc.blur == pytest.approx(out.blur)
            assert inc.overlay_opacity == pytest.approx(out.overlay_opacity)

    @pytest.mark.parametrize("kind", list(TransitionType))
    def test_edges_show_one_scene(self, kind):
        """Test progress 0 is all outgoing and progress 1 all incoming."""
        start = blend(_spec(kind), 0.0)
        end = blend(_spec(kind), 1.0)
        assert start.outgoing_opacity == pytest.approx(1.0)
        assert start.incoming_opacity == pytest.approx(0.0)
        assert end.incoming_opacity == pytest.approx(1.0)
        assert end.outgoing_opacity == pytest.approx(0.0)
        assert start.blur == pytest.approx(0.0)

    def test_whip_pan_direction(self):
        """Test outgoing leaves along the direction, incoming arrives against it."""
        spec = _spec(TransitionType.WHIP_PAN, direction=TransitionDirection.RIGHT)

        early = blend(spec, 0.3)
        late = blend(spec, 0.7)

        assert early.outgoing_offset_x > 0
        assert early.outgoing_offset_y == 0
        assert late.incoming_offset_x < 0

    def test_whip_pan_blur_peaks_at_midpoint(self):
        spec = _spec(TransitionType.WHIP_PAN)
        assert blend(spec, 0.5).blur == pytest.approx(60.0)
        assert blend(spec, 0.4999).blur == pytest.approx(60.0, abs=0.1)
        assert blend(spec, 0.15).blur < blend(spec, 0.3).blur

    def test_whip_pan_left(self):
        spec = _spec(TransitionType.WHIP_PAN, direction=TransitionDirection.LEFT)
        assert blend(spec, 0.3).outgoing_offset_x < 0
        assert blend(spec, 0.7).incoming_offset_x > 0

    def test_fade_goes_through_black(self):
        spec = _spec(TransitionType.FADE)
        assert blend(spec, 0.25).outgoing_opacity == pytest.approx(0.5)
        mid = blend(spec, 0.5)
        assert mid.outgoing_opacity == pytest.approx(0.0)
        assert mid.incoming_opacity == pytest.approx(0.0)
        assert blend(spec, 0.75).incoming_opacity == pytest.approx(0.5)

    def test_dissolve_crossfades(self):
        mid = blend(_spec(TransitionType.DISSOLVE), 0.5)
        assert mid.outgoing_opacity + mid.incoming_opacity == pytest.approx(1.0)

    def test_light_leak_overlay(self):
        """Test warm leak strength is 0.9 at full intensity."""
        spec = _spec(TransitionType.LIGHT_LEAK)
        assert blend(spec, 0.5).overlay_opacity == pytest.approx(0.9)
        assert blend(spec, 0.5).overlay_style == "warm"
        assert blend(spec, 0.0).overlay_opacity == pytest.approx(0.0)

    def test_light_leak_intensity_scales_overlay(self):
        spec = _spec(TransitionType.LIGHT_LEAK, style="cool", intensity=0.5)
        assert blend(spec, 0.5).overlay_opacity == pytest.approx(0.4)

    def test_elegant_dissolve_scales(self):
        spec = _spec(TransitionType.ELEGANT_DISSOLVE)
        assert blend(spec, 0.3).outgoing_scale > 1.0
        assert blend(spec, 0.7).incoming_scale < 1.0

    def test_cut_is_static(self):
        params = blend(_spec(TransitionType.CUT), 0.3)
        assert (params.outgoing_opacity, params.incoming_opacity) == (1.0, 0.0)
        assert params.blur == 0.0

    def test_progress_is_clamped(self):
        spec = _spec(TransitionType.DISSOLVE)
        assert blend(spec, -0.5) == blend(spec, 0.0)
        assert blend(spec, 7.0) == blend(spec, 1.0)

    def test_nan_progress_rejected(self):
        with pytest.raises(ValueError):
            blend(_spec(TransitionType.DISSOLVE), math.nan)


class TestSampling:
    """Tests for per-frame keyframe sampling."""

    def test_window_progress_samples_frame_centres(self):
        assert [window_progress(k, 4) for k in range(4)] == [0.125, 0.375, 0.625, 0.875]
        assert window_progress(0, 0) == 1.0

    def test_sample_window(self):
        window = TransitionWindow(
            from_scene_id="a",
            to_scene_id="b",
            spec=_spec(TransitionType.DISSOLVE),
            requested_frames=30,
            realized_frames=30,
            overlap_frames=15,
            start_frame=135,
            end_frame=150,
        )

        keyframes = sample_window(window)

        assert [k.frame for k in keyframes] == list(range(135, 150))
        assert keyframes[0].values["dominant"] == "outgoing"
        assert keyframes[-1].values["dominant"] == "incoming"
        assert keyframes[7].values["progress"] == pytest.approx(7.5 / 15)

    @pytest.mark.parametrize("name", sorted(EASINGS))
    def test_easing_endpoints(self, name):
        easing = EASINGS[name]
        assert easing(0.0) == pytest.approx(0.0)
        assert easing(1.0) == pytest.approx(1.0)
        assert 0.0 <= easing(0.5) <= 1.0
