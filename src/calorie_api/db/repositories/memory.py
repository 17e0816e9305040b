"""In-process stores for development and tests."""

import logging
import uuid

from calorie_api.models.meal import Meal, MealCreate
from calorie_api.models.settings import UserSettings

from .meals import MealStore, check_owner, new_meal_document
from .settings import SettingsStore

logger = logging.getLogger(__name__)

HOUR_MS = 60 * 60 * 1000

_FIXTURES = [
    # (hours before now, name, description, calories, protein, carbs, fats, health)
    (1, "Grilled Chicken Salad", "Chicken breast over mixed greens", 420, 35, 18, 22, 4),
    (5, "Turkey Sandwich", "Whole wheat bread, turkey, lettuce and tomato", 380, 28, 42, 9, 4),
    (9, "Oatmeal with Berries", "Rolled oats with blueberries and honey", 310, 9, 58, 6, 5),
    (26, "Pepperoni Pizza", "Two slices of pepperoni pizza", 570, 24, 64, 24, 2),
    (30, "Caesar Salad", "Romaine, parmesan, croutons and Caesar dressing", 360, 10, 16, 28, 3),
]


def fixture_meals(user_id: str, now_ms: int) -> list[Meal]:
    """Sample meals spread over the last day and a half."""
    return [
        Meal(
            id=f"fixture-{index}",
            name=name,
            description=description,
            calories=calories,
            protein=protein,
            carbs=carbs,
            fats=fats,
            healthScore=health,
            timestamp=now_ms - hours * HOUR_MS,
            userId=user_id,
        )
        for index, (hours, name, description, calories, protein, carbs, fats, health)
        in enumerate(_FIXTURES, start=1)
    ]


class InMemoryMealStore(MealStore):
    """Meal store backed by a dict; contents are lost on restart."""

    def __init__(self, meals: list[Meal] | None = None):
        self._meals: dict[str, Meal] = {meal.id: meal for meal in meals or []}

    def _for_user(self, user_id: str) -> list[Meal]:
        meals = [meal for meal in self._meals.values() if meal.userId == user_id]
        return sorted(meals, key=lambda meal: meal.timestamp, reverse=True)

    async def list_all(self, user_id: str) -> list[Meal]:
        return self._for_user(user_id)

    async def list_range(self, user_id: str, start_ms: int, end_ms: int) -> list[Meal]:
        return [
            meal for meal in self._for_user(user_id) if start_ms <= meal.timestamp < end_ms
        ]

    async def get(self, meal_id: str) -> Meal | None:
        return self._meals.get(meal_id)

    async def add(self, user_id: str, data: MealCreate) -> Meal:
        meal = Meal(id=uuid.uuid4().hex, **new_meal_document(user_id, data))
        self._meals[meal.id] = meal
        logger.info(f"Added meal {meal.id} for user {user_id}")
        return meal

    async def delete(self, meal_id: str, user_id: str) -> None:
        check_owner(self._meals.get(meal_id), meal_id, user_id)
        del self._meals[meal_id]

    async def clear_all(self, user_id: str) -> int:
        owned = [meal_id for meal_id, meal in self._meals.items() if meal.userId == user_id]
        for meal_id in owned:
            del self._meals[meal_id]
        return len(owned)


class InMemorySettingsStore(SettingsStore):
    """Settings store backed by a dict."""

    def __init__(self) -> None:
        self._settings: dict[str, UserSettings] = {}

    async def get(self, user_id: str) -> UserSettings | None:
        return self._settings.get(user_id)

    async def put(self, user_id: str, settings: UserSettings) -> UserSettings:
        self._settings[user_id] = settings
        return settings
