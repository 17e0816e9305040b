"""API routes."""

from . import analysis, meals, progress, settings

__all__ = ["analysis", "meals", "progress", "settings"]
