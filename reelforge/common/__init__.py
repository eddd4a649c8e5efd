"""Common utilities and shared components."""

from reelforge.common.config import Settings, get_settings
from reelforge.common.logging import bind_run_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "bind_run_context",
    "get_logger",
    "setup_logging",
]
