"""End-to-end production run.

Ties the engine together:
1. Dispatch generation for every scene that needs media
2. Wait for every task to reach a terminal state
3. Assemble and validate the render plan
4. Optionally write render_plan.json, render_report.json and cost_breakdown.json

Scene failures never fail the run; they show up as placeholders and
per-scene errors in the report. Only configuration problems raise.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Sequence

from reelforge.assembly.assembler import AssemblyConfig, RenderPlanAssembler
from reelforge.common.config import Settings, get_settings
from reelforge.common.errors import ConfigurationError
from reelforge.common.logging import bind_run_context, clear_run_context, get_logger
from reelforge.common.models import (
    EndCardSpec,
    MusicTrackSpec,
    RenderPlan,
    Scene,
    TaskStatus,
    generate_id,
)
from reelforge.orchestration.cancellation import CancellationToken
from reelforge.orchestration.feedback import FeedbackConfig, QualityFeedbackChannel
from reelforge.orchestration.orchestrator import (
    GenerationOrchestrator,
    OrchestrationResult,
    OrchestratorConfig,
)
from reelforge.orchestration.progress import ProgressStream
from reelforge.providers.base import GenerationProvider
from reelforge.providers.registry import ProviderRegistry

logger = get_logger(__name__)


@dataclass
class ProductionResult:
    """Result of one production run."""

    run_id: str
    plan: RenderPlan
    orchestration: OrchestrationResult
    music: MusicTrackSpec | None = None
    end_card: EndCardSpec | None = None

    output_dir: Path | None = None
    plan_path: Path | None = None
    report_path: Path | None = None
    cost_breakdown_path: Path | None = None

    estimated_cost: float = 0.0
    generation_time_seconds: float = 0.0
    warnings: list[str] = field(default_factory=list)

    @property
    def placeholder_count(self) -> int:
        return len(self.plan.errors)


def estimate_costs(
    registry: ProviderRegistry, orchestration: OrchestrationResult
) -> dict[str, float]:
    """Per-scene cost of completed tasks (provider rate x scene seconds)."""
    costs = {}
    for scene_id, task in orchestration.tasks.items():
        if task.status != TaskStatus.COMPLETED or task.provider_id is None:
            continue
        rate = registry.get(task.provider_id).relative_cost
        costs[scene_id] = round(rate * task.request.duration_seconds, 4)
    return costs


class ProductionPipeline:
    """Generate, then compose."""

    def __init__(
        self,
        registry: ProviderRegistry,
        providers: Mapping[str, GenerationProvider] | Sequence[GenerationProvider],
        settings: Settings | None = None,
        orchestrator_config: OrchestratorConfig | None = None,
        assembly_config: AssemblyConfig | None = None,
        progress: ProgressStream | None = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry
        self.orchestrator = GenerationOrchestrator(
            registry,
            providers,
            config=orchestrator_config or OrchestratorConfig.from_settings(self.settings),
            progress=progress,
        )
        self.assembler = RenderPlanAssembler(
            assembly_config or AssemblyConfig.from_settings(self.settings)
        )

    @property
    def progress(self) -> ProgressStream:
        return self.orchestrator.progress

    def run(
        self,
        scenes: Sequence[Scene],
        music: MusicTrackSpec | None = None,
        end_card: EndCardSpec | None = None,
        cancel_token: CancellationToken | None = None,
        output_dir: str | Path | None = None,
    ) -> ProductionResult:
        """Run a production.

        Raises:
            ConfigurationError: invalid scenes, levels or output settings.
        """
        if not scenes:
            raise ConfigurationError("A production needs at least one scene")
        # Nothing is dispatched for input the assembler would reject
        self.assembler.check_inputs(scenes, music)

        run_id = generate_id("run")
        bind_run_context(run_id=run_id)
        start_time = time.time()

        logger.info(
            "pipeline_starting",
            scenes=len(scenes),
            fps=self.assembler.config.fps,
            music=music is not None,
            end_card=end_card is not None,
        )

        try:
            # Step 1-2: generation, with a barrier on all tasks
            orchestration = self.orchestrator.run(scenes, cancel_token)

            # Step 3: composition
            plan = self.assembler.assemble(
                orchestration.scenes,
                orchestration.outcomes,
                music=music,
                end_card=end_card,
            )

            costs = estimate_costs(self.registry, orchestration)
            result = ProductionResult(
                run_id=run_id,
                plan=plan,
                orchestration=orchestration,
                music=music,
                end_card=end_card,
                estimated_cost=round(sum(costs.values()), 4),
                generation_time_seconds=round(time.time() - start_time, 3),
                warnings=[w.message for w in plan.warnings],
            )

            # Step 4: outputs
            if output_dir is not None:
                self._write_outputs(result, Path(output_dir), costs)

            logger.info(
                "pipeline_complete",
                total_frames=plan.total_frames,
                placeholders=result.placeholder_count,
                warnings=len(plan.warnings),
                estimated_cost=result.estimated_cost,
                cancelled=orchestration.cancelled,
            )
            return result
        finally:
            clear_run_context()

    def feedback_channel(
        self, result: ProductionResult, config: FeedbackConfig | None = None
    ) -> QualityFeedbackChannel:
        """Regeneration channel bound to a finished production."""
        return QualityFeedbackChannel(
            orchestrator=self.orchestrator,
            assembler=self.assembler,
            scenes=result.orchestration.scenes,
            plan=result.plan,
            music=result.music,
            end_card=result.end_card,
            config=config or FeedbackConfig.from_settings(self.settings),
        )

    def _write_outputs(
        self, result: ProductionResult, output_dir: Path, costs: dict[str, float]
    ) -> None:
        output_dir.mkdir(parents=True, exist_ok=True)

        plan_path = output_dir / "render_plan.json"
        plan_path.write_text(result.plan.to_json())
        result.plan_path = plan_path

        report: dict[str, Any] = {
            "run_id": result.run_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "generation_time_seconds": result.generation_time_seconds,
            "orchestration": result.orchestration.summary(),
            "tasks": [t.summary() for t in result.orchestration.tasks.values()],
            **result.plan.report(),
        }
        report_path = output_dir / "render_report.json"
        with open(report_path, "w") as f:
            json.dump(report, f, indent=2)
        result.report_path = report_path

        cost_breakdown = {
            "total_cost": result.estimated_cost,
            "breakdown_by_scene": costs,
        }
        cost_path = output_dir / "cost_breakdown.json"
        with open(cost_path, "w") as f:
            json.dump(cost_breakdown, f, indent=2)
        result.cost_breakdown_path = cost_path
        result.output_dir = output_dir

        logger.info("pipeline_outputs_written", output_dir=str(output_dir))
