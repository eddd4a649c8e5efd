"""Render plan assembly and validation."""

from reelforge.assembly.assembler import AssemblyConfig, RenderPlanAssembler
from reelforge.assembly.validation import (
    check_entries,
    check_music_ducking,
    check_scene_ranges,
    check_total_frames,
    validate_render_plan,
)

__all__ = [
    "AssemblyConfig",
    "RenderPlanAssembler",
    "check_entries",
    "check_music_ducking",
    "check_scene_ranges",
    "check_total_frames",
    "validate_render_plan",
]
