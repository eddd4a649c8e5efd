"""reelforge: generation orchestration and timeline composition engine."""

__version__ = "0.1.0"
