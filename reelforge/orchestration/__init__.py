"""Generation orchestration: dispatch, retry, fallback and regeneration."""

from reelforge.orchestration.cancellation import CancellationToken
from reelforge.orchestration.feedback import (
    ISSUE_PROMPT_HINTS,
    FeedbackConfig,
    QualityFeedbackChannel,
    RegenerationRequest,
    improve_prompt,
)
from reelforge.orchestration.orchestrator import (
    GenerationOrchestrator,
    OrchestrationResult,
    OrchestratorConfig,
)
from reelforge.orchestration.placeholder import (
    create_placeholder_card,
    create_placeholder_reference,
    placeholder_uri,
)
from reelforge.orchestration.progress import (
    ProgressEvent,
    ProgressRecorder,
    ProgressStream,
)
from reelforge.orchestration.retry import RetryPolicy

__all__ = [
    # Cancellation
    "CancellationToken",
    # Orchestrator
    "GenerationOrchestrator",
    "OrchestrationResult",
    "OrchestratorConfig",
    "RetryPolicy",
    # Progress
    "ProgressEvent",
    "ProgressRecorder",
    "ProgressStream",
    # Placeholders
    "create_placeholder_card",
    "create_placeholder_reference",
    "placeholder_uri",
    # Feedback
    "ISSUE_PROMPT_HINTS",
    "FeedbackConfig",
    "QualityFeedbackChannel",
    "RegenerationRequest",
    "improve_prompt",
]
