"""Unit of Work pattern for managing store access."""

import logging

from calorie_api.core.config import Settings, StoreBackend
from calorie_api.models.meal import Meal
from calorie_api.utils.dates import now_ms

from .mongo import MongoDB
from .repositories.meals import MEALS_COLLECTION, MealStore, MongoMealStore
from .repositories.memory import InMemoryMealStore, InMemorySettingsStore, fixture_meals
from .repositories.settings import SETTINGS_COLLECTION, MongoSettingsStore, SettingsStore

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern implementation.

    Groups store access and provides a single injection point for services.

    Usage:
        uow = build_unit_of_work(settings)
        meals = await uow.meals.list_all(user_id)
        targets = await uow.settings.get(user_id)
    """

    def __init__(
        self,
        meals: MealStore,
        settings: SettingsStore,
        backend: str = StoreBackend.MEMORY.value,
        mongo: MongoDB | None = None,
    ):
        """
        Initialize Unit of Work.

        Args:
            meals: Meal record store
            settings: User settings store
            backend: Backend name reported by /health
            mongo: Connection to close on shutdown, for the mongo backend
        """
        self.meals = meals
        self.settings = settings
        self.backend = backend
        self._mongo = mongo

    @classmethod
    def in_memory(cls, meals: list[Meal] | None = None) -> "UnitOfWork":
        """Build a Unit of Work over fresh in-process stores."""
        return cls(
            meals=InMemoryMealStore(meals),
            settings=InMemorySettingsStore(),
            backend=StoreBackend.MEMORY.value,
        )

    def close(self) -> None:
        """Release the database connection, if any."""
        if self._mongo is not None:
            self._mongo.close()


def build_unit_of_work(settings: Settings) -> UnitOfWork:
    """
    Build the configured store backend.

    Args:
        settings: Application settings

    Returns:
        UnitOfWork over MongoDB or in-process stores
    """
    if settings.store_backend == StoreBackend.MONGO:
        logger.info(f"Connecting to MongoDB database {settings.db_name}")
        mongo = MongoDB(settings.mongo_uri, settings.db_name)
        db = mongo.get_database()
        return UnitOfWork(
            meals=MongoMealStore(db[MEALS_COLLECTION]),
            settings=MongoSettingsStore(db[SETTINGS_COLLECTION]),
            backend=StoreBackend.MONGO.value,
            mongo=mongo,
        )

    seed = []
    if settings.seed_fixture_meals:
        seed = fixture_meals(settings.dev_user_id, now_ms())
        logger.info(f"Seeding {len(seed)} fixture meals for {settings.dev_user_id}")
    logger.warning("Using in-memory store; data is lost on restart")
    return UnitOfWork.in_memory(seed)
