"""Pydantic models for API schemas."""

from .analysis import AnalysisResponse, AnalysisResult, CorrectionContext, DescriptionRequest
from .meal import (
    DEFAULT_HEALTH_SCORE,
    PLACEHOLDER_IMAGE_URL,
    Meal,
    MealCreate,
    MealListResponse,
    MealResponse,
    MessageResponse,
)
from .progress import (
    CalendarDay,
    CalendarMonth,
    CalendarMonthResponse,
    DailyProgress,
    DailyProgressResponse,
    DayStatus,
    MacroTotals,
)
from .settings import SettingsResponse, UserSettings, default_macro_targets

__all__ = [
    # Analysis
    "AnalysisResponse",
    "AnalysisResult",
    "CorrectionContext",
    "DescriptionRequest",
    # Meals
    "DEFAULT_HEALTH_SCORE",
    "PLACEHOLDER_IMAGE_URL",
    "Meal",
    "MealCreate",
    "MealListResponse",
    "MealResponse",
    "MessageResponse",
    # Progress
    "CalendarDay",
    "CalendarMonth",
    "CalendarMonthResponse",
    "DailyProgress",
    "DailyProgressResponse",
    "DayStatus",
    "MacroTotals",
    # Settings
    "SettingsResponse",
    "UserSettings",
    "default_macro_targets",
]
