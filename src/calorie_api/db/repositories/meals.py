"""Meal record store: interface and MongoDB implementation."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import OperationFailure

from calorie_api.core.exceptions import ForbiddenError, NotFoundError
from calorie_api.models.meal import (
    DEFAULT_HEALTH_SCORE,
    PLACEHOLDER_IMAGE_URL,
    Meal,
    MealCreate,
)
from calorie_api.utils.dates import now_ms

from .base import BaseRepository

logger = logging.getLogger(__name__)

MEALS_COLLECTION = "meals"


def new_meal_document(user_id: str, data: MealCreate) -> dict[str, Any]:
    """
    Build the stored fields for a new meal.

    Fills `timestamp` with the current time and `imageUrl` with the
    placeholder when the client did not send them, and stamps the owner.
    """
    document = data.model_dump(exclude_none=True)
    document.setdefault("timestamp", now_ms())
    if not document.get("imageUrl"):
        document["imageUrl"] = PLACEHOLDER_IMAGE_URL
    document.setdefault("healthScore", DEFAULT_HEALTH_SCORE)
    document["userId"] = user_id
    return document


def check_owner(meal: Meal | None, meal_id: str, user_id: str) -> Meal:
    """
    Ensure a meal exists and belongs to `user_id`.

    Raises:
        NotFoundError: If the meal does not exist
        ForbiddenError: If another user owns it
    """
    if meal is None:
        raise NotFoundError("Meal", meal_id)
    if meal.userId != user_id:
        raise ForbiddenError("Unauthorized to delete this meal")
    return meal


class MealStore(ABC):
    """
    Per-user meal persistence.

    Lists are ordered newest first. Range bounds are epoch milliseconds,
    half-open [start, end).
    """

    @abstractmethod
    async def list_all(self, user_id: str) -> list[Meal]:
        ...

    @abstractmethod
    async def list_range(self, user_id: str, start_ms: int, end_ms: int) -> list[Meal]:
        ...

    @abstractmethod
    async def get(self, meal_id: str) -> Meal | None:
        ...

    @abstractmethod
    async def add(self, user_id: str, data: MealCreate) -> Meal:
        """Store a new meal for `user_id` and return it with its id."""
        ...

    @abstractmethod
    async def delete(self, meal_id: str, user_id: str) -> None:
        """
        Delete a meal owned by `user_id`.

        Raises:
            NotFoundError: Unknown meal id
            ForbiddenError: Meal belongs to someone else
        """
        ...

    @abstractmethod
    async def clear_all(self, user_id: str) -> int:
        """Delete every meal owned by `user_id`; returns how many were removed."""
        ...


class MongoMealStore(BaseRepository[Meal], MealStore):
    """
    Repository for the `meals` collection.

    Documents carry the camelCase meal fields plus `userId`.
    """

    model_class = Meal

    def __init__(self, collection: AsyncIOMotorCollection):
        super().__init__(collection)

    async def list_all(self, user_id: str) -> list[Meal]:
        return await self.find_many(
            {"userId": user_id},
            sort=[("timestamp", DESCENDING)],
        )

    async def list_range(self, user_id: str, start_ms: int, end_ms: int) -> list[Meal]:
        try:
            return await self.find_many(
                {"userId": user_id, "timestamp": {"$gte": start_ms, "$lt": end_ms}},
                sort=[("timestamp", DESCENDING)],
            )
        except OperationFailure as e:
            # Missing compound index; filter the user's meals here instead
            logger.warning(f"Range query failed, filtering in process: {e}")
            meals = await self.list_all(user_id)
            return [meal for meal in meals if start_ms <= meal.timestamp < end_ms]

    async def get(self, meal_id: str) -> Meal | None:
        return await self.find_by_id(meal_id)

    async def add(self, user_id: str, data: MealCreate) -> Meal:
        document = new_meal_document(user_id, data)
        meal_id = await self.insert_one(document)
        document.pop("_id", None)
        logger.info(f"Added meal {meal_id} for user {user_id}")
        return Meal(id=meal_id, **document)

    async def delete(self, meal_id: str, user_id: str) -> None:
        check_owner(await self.get(meal_id), meal_id, user_id)
        await self.delete_one(meal_id)
        logger.info(f"Deleted meal {meal_id} for user {user_id}")

    async def clear_all(self, user_id: str) -> int:
        deleted = await self.delete_many({"userId": user_id})
        logger.info(f"Cleared {deleted} meals for user {user_id}")
        return deleted
