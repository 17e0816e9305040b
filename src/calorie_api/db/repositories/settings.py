"""Per-user settings store: interface and MongoDB implementation."""

import logging
from abc import ABC, abstractmethod

from motor.motor_asyncio import AsyncIOMotorCollection

from calorie_api.models.settings import UserSettings

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "user_settings"


class SettingsStore(ABC):
    """One settings document per user; writes overwrite it entirely."""

    @abstractmethod
    async def get(self, user_id: str) -> UserSettings | None:
        ...

    @abstractmethod
    async def put(self, user_id: str, settings: UserSettings) -> UserSettings:
        ...


class MongoSettingsStore(SettingsStore):
    """Settings documents in the `user_settings` collection, keyed by `userId`."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def get(self, user_id: str) -> UserSettings | None:
        doc = await self.collection.find_one({"userId": user_id}, {"_id": 0, "userId": 0})
        return UserSettings.model_validate(doc) if doc else None

    async def put(self, user_id: str, settings: UserSettings) -> UserSettings:
        await self.collection.replace_one(
            {"userId": user_id},
            {**settings.model_dump(), "userId": user_id},
            upsert=True,
        )
        logger.info(f"Saved settings for user {user_id}")
        return settings
