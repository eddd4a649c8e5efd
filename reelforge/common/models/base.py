"""Base model class and id helpers."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict


def generate_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid4().hex[:12]}"


def stable_id(prefix: str, *parts: object) -> str:
    """Build a deterministic ID from its parts (same input, same ID)."""
    return ":".join([prefix, *(str(p) for p in parts)])


class FrozenModel(BaseModel):
    """Base class for immutable records."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    def summary(self) -> dict[str, Any]:
        """Return a summary dict for logging."""
        return {"type": self.__class__.__name__}
