"""
Progress service - daily totals and the monthly calendar heatmap.

Aggregation happens in process over the user's meals for the period; a
month is at most a few hundred records.
"""

import datetime as dt
import logging
from collections import defaultdict
from collections.abc import Iterable

from calorie_api.db.unit_of_work import UnitOfWork
from calorie_api.models.meal import Meal
from calorie_api.models.progress import (
    CalendarDay,
    CalendarMonth,
    DailyProgress,
    DayStatus,
    MacroTotals,
)
from calorie_api.utils.dates import (
    UTC_TZ,
    day_bounds_ms,
    from_epoch_ms,
    month_bounds_ms,
    month_days,
    today,
)

from .settings import SettingsService

logger = logging.getLogger(__name__)

UNDER_THRESHOLD = 80.0
OVER_THRESHOLD = 100.0
WELL_OVER_THRESHOLD = 120.0


def day_status(calories: int, target: int) -> DayStatus:
    """
    Classify a day's intake against the calorie target.

    Args:
        calories: Calories consumed
        target: Daily calorie target

    Returns:
        none (nothing logged), under (<80%), on_target (<=100%),
        over (<=120%) or well_over
    """
    if calories <= 0:
        return DayStatus.NONE
    percent = percent_of_target(calories, target)
    if percent < UNDER_THRESHOLD:
        return DayStatus.UNDER
    if percent <= OVER_THRESHOLD:
        return DayStatus.ON_TARGET
    if percent <= WELL_OVER_THRESHOLD:
        return DayStatus.OVER
    return DayStatus.WELL_OVER


def percent_of_target(calories: int, target: int) -> float:
    if target <= 0:
        return 0.0
    return round(calories / target * 100, 1)


def sum_meals(meals: Iterable[Meal]) -> MacroTotals:
    """Add up calories and macros; unset macros count as 0."""
    totals = MacroTotals()
    for meal in meals:
        totals.calories += meal.calories
        totals.protein += meal.protein or 0
        totals.carbs += meal.carbs or 0
        totals.fats += meal.fats or 0
    return totals


class ProgressService:
    """Service for intake summaries against user targets."""

    def __init__(self, uow: UnitOfWork, tz: dt.tzinfo = UTC_TZ):
        """
        Initialize progress service.

        Args:
            uow: Unit of Work instance
            tz: Timezone for day boundaries
        """
        self.uow = uow
        self.tz = tz
        self.settings = SettingsService(uow)

    async def daily(self, user_id: str, day: dt.date | None = None) -> DailyProgress:
        """
        Intake for one day (default: today) against the user's targets.
        """
        day = day or today(self.tz)
        start_ms, end_ms = day_bounds_ms(day, self.tz)
        meals = await self.uow.meals.list_range(user_id, start_ms, end_ms)
        targets = await self.settings.get(user_id)

        consumed = sum_meals(meals)
        target = targets.dailyCalorieTarget
        return DailyProgress(
            date=day,
            consumed=consumed,
            targets=targets,
            remainingCalories=target - consumed.calories,
            percentOfTarget=percent_of_target(consumed.calories, target),
            status=day_status(consumed.calories, target),
            mealCount=len(meals),
        )

    async def calendar(self, user_id: str, year: int, month: int) -> CalendarMonth:
        """
        Per-day calories and heat status for a calendar month.
        """
        start_ms, end_ms = month_bounds_ms(year, month, self.tz)
        meals = await self.uow.meals.list_range(user_id, start_ms, end_ms)
        targets = await self.settings.get(user_id)
        target = targets.dailyCalorieTarget

        by_day: dict[dt.date, list[Meal]] = defaultdict(list)
        for meal in meals:
            by_day[from_epoch_ms(meal.timestamp, self.tz).date()].append(meal)

        days = []
        for day in month_days(year, month):
            calories = sum(meal.calories for meal in by_day.get(day, []))
            days.append(
                CalendarDay(
                    date=day,
                    calories=calories,
                    mealCount=len(by_day.get(day, [])),
                    percentOfTarget=percent_of_target(calories, target),
                    status=day_status(calories, target),
                )
            )

        logger.info(f"Built calendar {year}-{month:02d} for {user_id} from {len(meals)} meals")
        return CalendarMonth(
            year=year,
            month=month,
            dailyCalorieTarget=target,
            days=days,
            totals=sum_meals(meals),
        )
