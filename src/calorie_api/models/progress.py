"""Pydantic models for daily progress and the monthly calendar view."""

import datetime as dt
from enum import Enum

from pydantic import BaseModel, Field

from .settings import UserSettings


class DayStatus(str, Enum):
    """Calorie intake relative to the daily target."""

    NONE = "none"  # Nothing logged
    UNDER = "under"  # Below 80%
    ON_TARGET = "on_target"  # 80-100%
    OVER = "over"  # 100-120%
    WELL_OVER = "well_over"  # Above 120%


class MacroTotals(BaseModel):
    """Summed intake for a set of meals."""

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fats: int = 0


class DailyProgress(BaseModel):
    """Intake for one day against the user's targets."""

    date: dt.date
    consumed: MacroTotals
    targets: UserSettings
    remainingCalories: int
    percentOfTarget: float
    status: DayStatus
    mealCount: int = 0


class CalendarDay(BaseModel):
    """One cell of the calendar heatmap."""

    date: dt.date
    calories: int = 0
    mealCount: int = 0
    percentOfTarget: float = 0.0
    status: DayStatus = DayStatus.NONE


class CalendarMonth(BaseModel):
    """Per-day intake for a calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    dailyCalorieTarget: int
    days: list[CalendarDay] = Field(default_factory=list)
    totals: MacroTotals


class DailyProgressResponse(BaseModel):
    success: bool = True
    data: DailyProgress


class CalendarMonthResponse(BaseModel):
    success: bool = True
    data: CalendarMonth
