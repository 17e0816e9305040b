"""Utility functions."""

from .dates import day_bounds_ms, get_zone, now_ms, today, utc_now

__all__ = ["utc_now", "now_ms", "get_zone", "today", "day_bounds_ms"]
