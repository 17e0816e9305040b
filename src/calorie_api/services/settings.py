"""Settings service - per-user calorie and macro targets."""

import logging

from calorie_api.db.unit_of_work import UnitOfWork
from calorie_api.models.settings import UserSettings

logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and writes user targets, filling in derived macro targets."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def get(self, user_id: str) -> UserSettings:
        """Stored settings, or the 2000 kcal defaults, with macros resolved."""
        stored = await self.uow.settings.get(user_id)
        return (stored or UserSettings()).resolved()

    async def update(self, user_id: str, settings: UserSettings) -> UserSettings:
        """
        Replace the user's settings.

        Macro targets left unset are stored unset, so they keep tracking the
        calorie target; the returned copy has them resolved.
        """
        saved = await self.uow.settings.put(user_id, settings)
        return saved.resolved()
