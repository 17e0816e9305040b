"""
Backends used when no vendor key is configured.

`FixtureVisionService` answers with canned replies so the app can be driven
end to end in development. `UnavailableVisionService` fails every call with
UNAVAILABLE so a production deployment without a key says so explicitly.
"""

import json
import logging

from calorie_api.models.analysis import CorrectionContext

from .base import VisionAnalysisError, VisionAnalysisService, VisionReply
from .prompts import DESCRIPTION_SCHEMA

logger = logging.getLogger(__name__)

FIXTURE_MEAL = {
    "name": "Grilled Chicken Salad",
    "description": "Grilled chicken breast over mixed greens with cherry tomatoes, "
    "cucumber and a light vinaigrette",
    "calories": 420,
    "protein": 35,
    "carbs": 18,
    "fats": 22,
    "healthScore": 4,
}


class FixtureVisionService(VisionAnalysisService):
    """Canned replies for development without a vendor key."""

    status = "fixture"

    @property
    def provider_name(self) -> str:
        return "fixture"

    def _reply(self, meal: dict) -> VisionReply:
        return VisionReply(
            text=json.dumps(meal),
            schema=DESCRIPTION_SCHEMA,
            provider=self.provider_name,
        )

    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        logger.info(f"Fixture analysis for {len(image_data)} byte {media_type} image")
        meal = dict(FIXTURE_MEAL)
        if correction is not None:
            meal["description"] = f"{meal['description']} ({correction.correction_text})"
        return self._reply(meal)

    async def describe_text(
        self,
        description: str,
        *,
        previous: str | None = None,
    ) -> VisionReply:
        meal = dict(FIXTURE_MEAL)
        meal["name"] = description.strip()[:60] or FIXTURE_MEAL["name"]
        meal["description"] = description.strip() or FIXTURE_MEAL["description"]
        return self._reply(meal)

    async def health_check(self) -> bool:
        return True


class UnavailableVisionService(VisionAnalysisService):
    """Stands in for a provider whose API key is missing."""

    status = "unavailable"

    def __init__(self, provider: str, reason: str):
        self._provider = provider
        self.reason = reason

    @property
    def provider_name(self) -> str:
        return self._provider

    def _fail(self) -> VisionAnalysisError:
        return VisionAnalysisError(
            message=self.reason,
            error_code="UNAVAILABLE",
            provider=self._provider,
        )

    async def describe_image(
        self,
        image_data: bytes,
        media_type: str,
        *,
        correction: CorrectionContext | None = None,
    ) -> VisionReply:
        raise self._fail()

    async def describe_text(
        self,
        description: str,
        *,
        previous: str | None = None,
    ) -> VisionReply:
        raise self._fail()

    async def health_check(self) -> bool:
        return False
