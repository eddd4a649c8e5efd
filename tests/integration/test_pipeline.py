"""End-to-end production pipeline tests against stub providers."""

import json

import pytest

from reelforge.assembly import AssemblyConfig, validate_render_plan
from reelforge.common.config import Settings
from reelforge.common.errors import ConfigurationError
from reelforge.common.models import (
    EndCardSpec,
    LayerType,
    MusicTrackSpec,
    NarrationSpec,
    SceneOutcome,
    TextOverlaySpec,
    TransitionSpec,
    TransitionType,
)
from reelforge.orchestration import CancellationToken, ProgressRecorder
from reelforge.pipeline import ProductionPipeline, estimate_costs
from reelforge.providers import StubOutcome, StubProvider


@pytest.fixture
def settings():
    return Settings(_env_file=None, max_regenerations_per_scene=1)


@pytest.fixture
def scenes(make_scene):
    dissolve = TransitionSpec(type=TransitionType.DISSOLVE, duration_seconds=1.0)
    whip = TransitionSpec(type=TransitionType.WHIP_PAN, duration_seconds=0.4)
    return [
        make_scene(
            "scene_1",
            0,
            transition_out=dissolve,
            text_overlays=[TextOverlaySpec(text="Hook", start_seconds=0.5)],
            narration=NarrationSpec(uri="voice://1", start_seconds=0.3, duration_seconds=3.0),
        ),
        make_scene("scene_2", 1, style="broll", transition_out=whip),
        make_scene(
            "scene_3",
            2,
            narration=NarrationSpec(uri="voice://3", start_seconds=0.5),
        ),
    ]


def _pipeline(ab_registry, fast_config, settings, providers):
    return ProductionPipeline(
        ab_registry,
        providers,
        settings=settings,
        orchestrator_config=fast_config,
        assembly_config=AssemblyConfig(fps=30),
    )


@pytest.mark.integration
class TestProductionPipeline:
    """Generation through to a validated, written render plan."""

    def test_full_run(self, ab_registry, fast_config, settings, scenes, tmp_path):
        """Test a run with one fallback and one placeholder still yields a full plan."""
        a = StubProvider(
            "A",
            scripts={"scene_1": [StubOutcome.TRANSIENT] * 3, "scene_3": [StubOutcome.PERMANENT]},
        )
        b = StubProvider("B", scripts={"scene_3": [StubOutcome.PERMANENT]})
        pipeline = _pipeline(ab_registry, fast_config, settings, [a, b])
        recorder = ProgressRecorder()
        pipeline.progress.subscribe(recorder)

        result = pipeline.run(
            scenes,
            music=MusicTrackSpec(uri="music://bed"),
            end_card=EndCardSpec(duration_seconds=2.0, headline="Acme"),
            output_dir=tmp_path,
        )

        plan = result.plan
        # 150 + 150 + 150 - 15 (dissolve) - 6 (whip pan) + 60 end card
        assert plan.total_frames == 489
        assert plan.scene_outcomes == {
            "scene_1": SceneOutcome.RESOLVED_FALLBACK,
            "scene_2": SceneOutcome.RESOLVED_PRIMARY,
            "scene_3": SceneOutcome.PLACEHOLDER_FAILED,
        }
        assert result.placeholder_count == 1
        assert validate_render_plan(plan) == []
        assert len(plan.entries_on(LayerType.VIDEO)) == 3
        assert len(plan.entries_on(LayerType.TRANSITION)) == 2
        assert {e.status.value for e in recorder.events} >= {"pending", "completed", "exhausted"}

        assert result.estimated_cost == pytest.approx(0.02 * 5 * 2)

        report = json.loads(result.report_path.read_text())
        assert report["placeholder_scenes"] == ["scene_3"]
        assert report["total_frames"] == 489
        saved = json.loads(result.plan_path.read_text())
        assert saved["metadata"]["total_frames"] == 489
        costs = json.loads(result.cost_breakdown_path.read_text())
        assert set(costs["breakdown_by_scene"]) == {"scene_1", "scene_2"}

    def test_regenerate_after_run(self, ab_registry, fast_config, settings, scenes):
        a = StubProvider("A", scripts={"scene_3": [StubOutcome.PERMANENT]})
        b = StubProvider("B", scripts={"scene_3": [StubOutcome.PERMANENT]})
        pipeline = _pipeline(ab_registry, fast_config, settings, [a, b])
        result = pipeline.run(scenes, music=MusicTrackSpec(uri="music://bed"))
        assert result.placeholder_count == 1

        channel = pipeline.feedback_channel(result)
        plan = channel.regenerate("scene_3", issues=["technical"])

        assert plan.errors == []
        assert validate_render_plan(plan) == []
        assert plan.total_frames == result.plan.total_frames
        # limit of one from settings
        assert channel.regenerate("scene_3").warnings[-1].code == "regeneration_limit"

    def test_cancelled_run(self, ab_registry, fast_config, settings, scenes):
        """Test a cancelled run still assembles a plan with every scene marked."""
        token = CancellationToken()
        token.cancel("user")
        a = StubProvider("A")
        pipeline = _pipeline(ab_registry, fast_config, settings, [a, StubProvider("B")])

        result = pipeline.run(scenes, cancel_token=token)

        assert result.orchestration.cancelled
        assert a.submissions == []
        assert {e.code for e in result.plan.errors} == {"cancelled"}
        assert result.plan.total_frames == 450 - 15 - 6
        assert estimate_costs(ab_registry, result.orchestration) == {}

    def test_empty_production(self, ab_registry, fast_config, settings):
        pipeline = _pipeline(ab_registry, fast_config, settings, [StubProvider("A")])
        with pytest.raises(ConfigurationError):
            pipeline.run([])

    @pytest.mark.parametrize(
        "second",
        [
            {"scene_id": "s2", "order": 1, "duration": -3.0},
            {"scene_id": "s2", "order": 1, "duration": 0.01},
            {"scene_id": "s1", "order": 1},
            {"scene_id": "s2", "order": 0},
        ],
        ids=["negative-duration", "sub-frame", "duplicate-id", "duplicate-order"],
    )
    def test_invalid_scenes_rejected_before_dispatch(
        self, ab_registry, fast_config, settings, make_scene, second
    ):
        """Test bad input fails before any provider is called or scored."""
        a, b = StubProvider("A"), StubProvider("B")
        pipeline = _pipeline(ab_registry, fast_config, settings, [a, b])
        scenes = [make_scene("s1", 0), make_scene(**second)]

        with pytest.raises(ConfigurationError):
            pipeline.run(scenes)

        assert a.submissions == []
        assert b.submissions == []
        assert ab_registry.stats("A").successes == 0

    def test_invalid_music_rejected_before_dispatch(
        self, ab_registry, fast_config, settings, scenes
    ):
        a = StubProvider("A")
        pipeline = _pipeline(ab_registry, fast_config, settings, [a, StubProvider("B")])

        with pytest.raises(ConfigurationError):
            pipeline.run(scenes, music=MusicTrackSpec(uri="m", base_volume=0.1, duck_volume=0.3))

        assert a.submissions == []
