"""Meal service - per-user meal log operations."""

import datetime as dt
import logging

from calorie_api.core.exceptions import ValidationError
from calorie_api.db.unit_of_work import UnitOfWork
from calorie_api.models.meal import Meal, MealCreate
from calorie_api.utils.dates import UTC_TZ, day_bounds_ms, today

logger = logging.getLogger(__name__)


class MealService:
    """
    Service for the meal log.

    Wraps the meal store with request-level validation and day boundaries.
    """

    def __init__(self, uow: UnitOfWork, tz: dt.tzinfo = UTC_TZ):
        """
        Initialize meal service.

        Args:
            uow: Unit of Work instance
            tz: Timezone used for "today"
        """
        self.uow = uow
        self.tz = tz

    async def list_meals(self, user_id: str) -> list[Meal]:
        """All of a user's meals, newest first."""
        return await self.uow.meals.list_all(user_id)

    async def meals_for_day(self, user_id: str, day: dt.date | None = None) -> list[Meal]:
        """Meals logged on `day` (default: today), newest first."""
        start_ms, end_ms = day_bounds_ms(day or today(self.tz), self.tz)
        return await self.uow.meals.list_range(user_id, start_ms, end_ms)

    async def meals_in_range(self, user_id: str, start_ms: int, end_ms: int) -> list[Meal]:
        """
        Meals with `start_ms <= timestamp < end_ms`, newest first.

        Raises:
            ValidationError: If the range is empty or inverted
        """
        if end_ms <= start_ms:
            raise ValidationError("start must be before end")
        return await self.uow.meals.list_range(user_id, start_ms, end_ms)

    async def add_meal(self, user_id: str, data: MealCreate) -> Meal:
        """
        Log a meal.

        Raises:
            ValidationError: If name or calories is missing or falsy
        """
        if not data.name or not data.calories:
            raise ValidationError("Name and calories are required")
        return await self.uow.meals.add(user_id, data)

    async def delete_meal(self, meal_id: str, user_id: str) -> None:
        """
        Delete one of the user's meals.

        Raises:
            NotFoundError: Unknown meal id
            ForbiddenError: Meal belongs to another user
        """
        await self.uow.meals.delete(meal_id, user_id)

    async def clear_meals(self, user_id: str) -> int:
        """Delete all of the user's meals."""
        return await self.uow.meals.clear_all(user_id)
