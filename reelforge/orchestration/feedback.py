"""Quality feedback: per-scene regeneration.

An external reviewer flags scenes it does not like; the channel re-runs
generation for that one scene, swaps its media into the production and
re-assembles. Everything else in the plan stays as it was.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import TYPE_CHECKING, Sequence

from pydantic import Field

from reelforge.common.config import Settings
from reelforge.common.errors import ConfigurationError
from reelforge.common.logging import get_logger
from reelforge.common.models import (
    EndCardSpec,
    FrozenModel,
    MusicTrackSpec,
    PlanWarning,
    RenderPlan,
    Scene,
    SceneOutcome,
    TaskStatus,
)
from reelforge.orchestration.orchestrator import GenerationOrchestrator

if TYPE_CHECKING:
    from reelforge.assembly.assembler import RenderPlanAssembler

logger = get_logger(__name__)


# Prompt guidance appended for each reviewer issue code
ISSUE_PROMPT_HINTS = {
    "text-overlap": "Leave clear space in the lower third of the frame for text overlays.",
    "poor-visibility": "Use bright, even lighting with strong contrast on the subject.",
    "content-mismatch": "Depict exactly the subject and action described, nothing else.",
    "bad-composition": "Use a balanced composition with the subject clearly framed.",
    "technical": "Clean, sharp output with stable motion and no artifacts.",
    "ai-text-detected": "Do not render any text, letters, logos or signage.",
}


def improve_prompt(prompt: str, issues: Sequence[str]) -> str:
    """Append guidance for known issue codes (once each)."""
    additions = []
    for issue in issues:
        hint = ISSUE_PROMPT_HINTS.get(issue)
        if hint and hint not in prompt and hint not in additions:
            additions.append(hint)
    if not additions:
        return prompt
    return " ".join([prompt.rstrip(), *additions]).strip()


class RegenerationRequest(FrozenModel):
    """Reviewer request to redo one scene."""

    scene_id: str
    issues: list[str] = Field(default_factory=list)
    reason: str = ""
    exclude_providers: list[str] = Field(default_factory=list)


class FeedbackConfig(FrozenModel):
    max_regenerations_per_scene: int = Field(default=2, ge=0)

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedbackConfig":
        return cls(max_regenerations_per_scene=settings.max_regenerations_per_scene)


class QualityFeedbackChannel:
    """Regenerates individual scenes of a finished production."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        assembler: "RenderPlanAssembler",
        scenes: Sequence[Scene],
        plan: RenderPlan,
        music: MusicTrackSpec | None = None,
        end_card: EndCardSpec | None = None,
        config: FeedbackConfig | None = None,
    ):
        self.orchestrator = orchestrator
        self.assembler = assembler
        self.music = music
        self.end_card = end_card
        self.config = config or FeedbackConfig()

        self._scenes = sorted(scenes, key=lambda s: s.order)
        self._outcomes: dict[str, SceneOutcome] = dict(plan.scene_outcomes)
        self._plan = plan
        self._regenerations: dict[str, int] = defaultdict(int)
        self._queue: list[RegenerationRequest] = []
        # Re-applied after every re-assembly, which starts from scratch
        self._feedback_warnings: list[PlanWarning] = []
        self._lock = threading.Lock()

    @property
    def plan(self) -> RenderPlan:
        return self._plan

    @property
    def scenes(self) -> list[Scene]:
        return list(self._scenes)

    def regeneration_count(self, scene_id: str) -> int:
        return self._regenerations[scene_id]

    # -------------------------------------------------------------------------
    # Queue
    # -------------------------------------------------------------------------

    def submit(self, request: RegenerationRequest) -> None:
        self._index_of(request.scene_id)
        with self._lock:
            self._queue.append(request)
        logger.info("regeneration_requested", scene_id=request.scene_id, issues=request.issues)

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def process_pending(self) -> RenderPlan:
        """Handle queued requests in arrival order; returns the latest plan."""
        while True:
            with self._lock:
                if not self._queue:
                    return self._plan
                request = self._queue.pop(0)
            self.regenerate(
                request.scene_id,
                issues=request.issues,
                exclude_providers=request.exclude_providers,
                reason=request.reason,
            )

    # -------------------------------------------------------------------------
    # Regeneration
    # -------------------------------------------------------------------------

    def regenerate(
        self,
        scene_id: str,
        issues: Sequence[str] = (),
        exclude_providers: Sequence[str] = (),
        reason: str = "",
    ) -> RenderPlan:
        """Re-dispatch one scene and return the re-assembled plan.

        Raises:
            ConfigurationError: if ``scene_id`` is not part of the production.
        """
        index = self._index_of(scene_id)
        scene = self._scenes[index]

        if self._regenerations[scene_id] >= self.config.max_regenerations_per_scene:
            logger.warning(
                "regeneration_limit_reached",
                scene_id=scene_id,
                limit=self.config.max_regenerations_per_scene,
            )
            self._record_warning(
                PlanWarning(
                    code="regeneration_limit",
                    message=f"Scene {scene_id} reached the regeneration limit",
                    scene_id=scene_id,
                )
            )
            return self._plan

        self._regenerations[scene_id] += 1
        request_scene = scene.model_copy(
            update={"prompt": improve_prompt(scene.prompt, issues)}
        )
        logger.info(
            "scene_regeneration_starting",
            scene_id=scene_id,
            attempt=self._regenerations[scene_id],
            reason=reason,
            issues=list(issues),
        )

        new_scene, task = self.orchestrator.generate_scene(
            request_scene, exclude_providers=exclude_providers
        )

        warning = None
        if task.status != TaskStatus.COMPLETED and scene.is_resolved:
            # Keep the media we had rather than downgrade to a placeholder
            new_scene = scene.model_copy(update={"prompt": request_scene.prompt})
            outcome = self._outcomes.get(scene_id, SceneOutcome.RESOLVED_PRIMARY)
            warning = PlanWarning(
                code="regeneration_failed",
                message=f"Regeneration of {scene_id} failed: {task.error}; kept previous media",
                scene_id=scene_id,
            )
        else:
            outcome = task.outcome

        self._scenes[index] = new_scene
        self._outcomes[scene_id] = outcome
        plan = self.assembler.assemble(
            self._scenes, self._outcomes, music=self.music, end_card=self.end_card
        )
        self._plan = plan.model_copy(
            update={"warnings": [*plan.warnings, *self._feedback_warnings]}
        )
        if warning:
            self._record_warning(warning)

        logger.info(
            "scene_regeneration_complete",
            scene_id=scene_id,
            status=task.status.value,
            outcome=outcome.value,
            provider=task.provider_id,
        )
        return self._plan

    def _index_of(self, scene_id: str) -> int:
        for i, scene in enumerate(self._scenes):
            if scene.id == scene_id:
                return i
        raise ConfigurationError(f"Unknown scene: {scene_id}", {"scene_id": scene_id})

    def _record_warning(self, warning: PlanWarning) -> None:
        self._feedback_warnings.append(warning)
        self._plan = self._plan.model_copy(update={"warnings": [*self._plan.warnings, warning]})
