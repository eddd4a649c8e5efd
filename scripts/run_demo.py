#!/usr/bin/env python3
"""
reelforge demo script

Runs a full production against scripted stub providers:
1. Build a short multi-scene ad (hook, problem, solution, call to action)
2. Dispatch generation with retry/fallback (optionally with injected failures)
3. Assemble the frame-accurate render plan (transitions, overlays, ducked music)
4. Optionally regenerate a scene through the quality feedback channel
5. Write render_plan.json, render_report.json and cost_breakdown.json

Usage:
    python scripts/run_demo.py
    python scripts/run_demo.py --flaky                # inject provider failures
    python scripts/run_demo.py --flaky --regenerate scene_3
    python scripts/run_demo.py --output-dir outputs/demo --json-logs
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add the repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from reelforge.common.config import get_settings
from reelforge.common.logging import get_logger, setup_logging
from reelforge.common.models import (
    EndCardSpec,
    MusicTrackSpec,
    NarrationSpec,
    Scene,
    SoundEventSpec,
    TextOverlaySpec,
    TransitionDirection,
    TransitionSpec,
    TransitionType,
)
from reelforge.orchestration import OrchestratorConfig, ProgressEvent, RetryPolicy
from reelforge.pipeline import ProductionPipeline
from reelforge.providers import StubOutcome, StubProvider, registry_from_settings

logger = get_logger(__name__)


def build_demo_scenes() -> list[Scene]:
    """Four-scene product ad."""
    return [
        Scene(
            id="scene_1",
            order=0,
            duration_seconds=4.0,
            style="hook",
            prompt="Close-up of a cluttered desk, notifications piling up on a laptop screen",
            text_overlays=[TextOverlaySpec(text="Drowning in busywork?", start_seconds=0.5)],
            transition_out=TransitionSpec(type=TransitionType.FADE, duration_seconds=0.5),
            narration=NarrationSpec(uri="voice://scene_1.mp3", start_seconds=0.3, duration_seconds=3.2),
        ),
        Scene(
            id="scene_2",
            order=1,
            duration_seconds=5.0,
            style="story",
            prompt="A tired team member rubbing their eyes late at night in a dim office",
            transition_out=TransitionSpec(
                type=TransitionType.DISSOLVE, duration_seconds=1.0
            ),
            narration=NarrationSpec(uri="voice://scene_2.mp3", start_seconds=0.5),
        ),
        Scene(
            id="scene_3",
            order=2,
            duration_seconds=5.0,
            style="product",
            prompt="Sleek dashboard reveal with smooth camera orbit around a floating screen",
            text_overlays=[
                TextOverlaySpec(text="One click. Done.", start_seconds=1.0, duration_seconds=2.5)
            ],
            transition_out=TransitionSpec(
                type=TransitionType.WHIP_PAN,
                duration_seconds=0.4,
                direction=TransitionDirection.LEFT,
            ),
            narration=NarrationSpec(uri="voice://scene_3.mp3", start_seconds=0.4, duration_seconds=4.0),
            sound_events=[
                SoundEventSpec(sound_id="whoosh-light", uri="sfx://whoosh-light.mp3", offset_seconds=4.7)
            ],
        ),
        Scene(
            id="scene_4",
            order=3,
            duration_seconds=4.0,
            style="cta",
            prompt="Confident founder smiling at camera, bright modern office",
            text_overlays=[TextOverlaySpec(text="Try it free today", start_seconds=0.8)],
            transition_in=TransitionSpec(type=TransitionType.LIGHT_LEAK, duration_seconds=0.8),
            narration=NarrationSpec(uri="voice://scene_4.mp3", start_seconds=0.2, duration_seconds=3.0),
        ),
    ]


def build_providers(flaky: bool) -> list[StubProvider]:
    """Stub providers for the video catalog; ``flaky`` scripts some failures."""
    scripts: dict[str, dict[str, list[str]]] = {}
    if flaky:
        scripts = {
            # transient blip, then success on retry
            "runway": {"scene_1": [StubOutcome.TRANSIENT, StubOutcome.OK]},
            # rate limited until retries run out, then rejected: placeholder
            "luma": {"scene_3": [StubOutcome.RATE_LIMIT] * 2 + [StubOutcome.PERMANENT]},
        }
    return [
        StubProvider(provider_id, scripts=scripts.get(provider_id), polls_until_done=2)
        for provider_id in ("runway", "veo", "kling", "luma", "hailuo", "hunyuan")
    ]


def print_event(event: ProgressEvent) -> None:
    print(f"   [{event.scene_id}] {event.status.value:<17} {event.provider_id or '-'} (attempt {event.attempt})")


def run_demo(flaky: bool, regenerate: str | None, output_dir: Path) -> bool:
    settings = get_settings()
    registry = registry_from_settings(settings)

    orchestrator_config = OrchestratorConfig(
        retry=RetryPolicy(max_retries=2, base_delay_seconds=0.05, max_delay_seconds=0.2),
        poll_interval_seconds=0.01,
        task_deadline_seconds=5.0,
    )
    pipeline = ProductionPipeline(
        registry,
        build_providers(flaky),
        settings=settings,
        orchestrator_config=orchestrator_config,
    )
    pipeline.progress.subscribe(print_event)

    print("\n🎬 Generating scenes...")
    result = pipeline.run(
        build_demo_scenes(),
        music=MusicTrackSpec(uri="music://upbeat-corporate.mp3"),
        end_card=EndCardSpec(
            duration_seconds=settings.end_card_seconds,
            headline="Acme Flow",
            cta_text="Start your free trial",
        ),
        output_dir=output_dir,
    )

    plan = result.plan
    print("\n📋 Render plan")
    print(f"   Frames: {plan.total_frames} ({plan.metadata.duration_seconds:.2f}s @ {plan.metadata.fps}fps)")
    print(f"   Entries: {len(plan.entries)}")
    for scene_id, outcome in plan.scene_outcomes.items():
        print(f"   {scene_id}: {outcome.value}")
    for warning in plan.warnings:
        print(f"   ⚠️  {warning.code}: {warning.message}")
    print(f"   Estimated cost: ${result.estimated_cost:.2f}")

    if regenerate:
        print(f"\n🔁 Regenerating {regenerate}...")
        channel = pipeline.feedback_channel(result)
        plan = channel.regenerate(regenerate, issues=["text-overlap"])
        print(f"   {regenerate}: {plan.scene_outcomes[regenerate].value}")
        (output_dir / "render_plan_regenerated.json").write_text(plan.to_json())

    print(f"\n📁 Outputs: {output_dir}")
    return not plan.errors


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="reelforge - orchestration and composition demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--flaky",
        action="store_true",
        help="Inject transient, permanent and rate-limit failures",
    )
    parser.add_argument(
        "--regenerate",
        type=str,
        default=None,
        help="Scene id to regenerate through the feedback channel afterwards",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="outputs/demo",
        help="Where to write the plan and reports (default: outputs/demo)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON logs",
    )
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=args.json_logs or settings.json_logs)

    success = run_demo(args.flaky, args.regenerate, Path(args.output_dir))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
