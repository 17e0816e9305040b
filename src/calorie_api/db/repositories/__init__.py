"""Repository classes for data access."""

from .base import BaseRepository
from .meals import MealStore, MongoMealStore
from .memory import InMemoryMealStore, InMemorySettingsStore, fixture_meals
from .settings import MongoSettingsStore, SettingsStore

__all__ = [
    "BaseRepository",
    "MealStore",
    "MongoMealStore",
    "InMemoryMealStore",
    "SettingsStore",
    "MongoSettingsStore",
    "InMemorySettingsStore",
    "fixture_meals",
]
