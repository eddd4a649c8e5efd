"""Pytest configuration and fixtures."""

import pytest

from reelforge.assembly import AssemblyConfig, RenderPlanAssembler
from reelforge.audio import DuckingConfig
from reelforge.common.models import (
    MediaReference,
    ProviderCapability,
    QualityTier,
    Scene,
    TransitionSpec,
    TransitionType,
)
from reelforge.orchestration import OrchestratorConfig, RetryPolicy
from reelforge.providers import ProviderRegistry


@pytest.fixture
def make_scene():
    """Factory for scenes with sensible defaults."""

    def _make(
        scene_id: str = "scene_1",
        order: int = 0,
        duration: float = 5.0,
        style: str = "X",
        resolved: bool = False,
        **kwargs,
    ) -> Scene:
        if resolved:
            kwargs.setdefault(
                "media",
                MediaReference(uri=f"file://{scene_id}.mp4", provider_id="A"),
            )
        return Scene(
            id=scene_id,
            order=order,
            duration_seconds=duration,
            style=style,
            prompt=f"Prompt for {scene_id}",
            **kwargs,
        )

    return _make


@pytest.fixture
def three_scenes(make_scene):
    """Three resolved 5s scenes joined by 1s dissolves."""
    dissolve = TransitionSpec(type=TransitionType.DISSOLVE, duration_seconds=1.0)
    return [
        make_scene("scene_1", 0, resolved=True, transition_out=dissolve),
        make_scene("scene_2", 1, resolved=True, transition_out=dissolve),
        make_scene("scene_3", 2, resolved=True),
    ]


@pytest.fixture
def ab_registry():
    """A: style X only, max 10s, ultra. B: every style, any duration, standard."""
    return ProviderRegistry(
        [
            ProviderCapability(
                provider_id="A",
                styles=["X"],
                max_duration_seconds=10,
                quality_tier=QualityTier.ULTRA,
                relative_cost=0.05,
                reliability=0.9,
            ),
            ProviderCapability(
                provider_id="B",
                styles=["*"],
                max_duration_seconds=None,
                quality_tier=QualityTier.STANDARD,
                relative_cost=0.02,
                reliability=0.9,
            ),
        ]
    )


@pytest.fixture
def fast_config():
    """Orchestrator config with no waiting."""
    return OrchestratorConfig(
        retry=RetryPolicy(max_retries=2, base_delay_seconds=0.0, max_delay_seconds=0.0),
        poll_interval_seconds=0.0,
        task_deadline_seconds=5.0,
        pool_width=4,
    )


@pytest.fixture
def ducking():
    """0.35 base, 0.1 duck, 9-frame ramps at 30fps."""
    return DuckingConfig(
        base_volume=0.35,
        duck_volume=0.1,
        ramp_in_seconds=0.3,
        ramp_out_seconds=0.3,
    )


@pytest.fixture
def assembler(ducking):
    return RenderPlanAssembler(AssemblyConfig(fps=30, width=1920, height=1080, ducking=ducking))
