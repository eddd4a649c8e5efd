"""Generation providers: contract, registry and selection."""

from reelforge.providers.base import (
    GenerationProvider,
    PollResult,
    PollStatus,
    ProviderHandle,
)
from reelforge.providers.registry import (
    DEFAULT_CAPABILITIES,
    ProviderRegistry,
    ProviderStats,
    registry_from_settings,
)
from reelforge.providers.selector import (
    rejection_reason,
    select_for_scene,
    select_providers,
)
from reelforge.providers.stub import StubOutcome, StubProvider

__all__ = [
    # Contract
    "GenerationProvider",
    "PollResult",
    "PollStatus",
    "ProviderHandle",
    # Registry
    "DEFAULT_CAPABILITIES",
    "ProviderRegistry",
    "ProviderStats",
    "registry_from_settings",
    # Selection
    "rejection_reason",
    "select_for_scene",
    "select_providers",
    # Stub
    "StubOutcome",
    "StubProvider",
]
