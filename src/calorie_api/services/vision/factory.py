"""
Factory for creating the vision analysis service.

The backend is chosen once, at startup, from Settings.
"""

import logging

from calorie_api.core.config import Settings, VisionProvider

from .anthropic_provider import AnthropicVisionService
from .base import VisionAnalysisService
from .fallback import FixtureVisionService, UnavailableVisionService
from .openai_provider import OpenAIVisionService

logger = logging.getLogger(__name__)


def _anthropic(settings: Settings) -> AnthropicVisionService:
    return AnthropicVisionService(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        timeout=settings.vision_timeout,
    )


def _openai(settings: Settings) -> OpenAIVisionService:
    return OpenAIVisionService(
        api_key=settings.openai_api_key,
        vision_model=settings.openai_vision_model,
        text_model=settings.openai_text_model,
        image_model=settings.openai_image_model,
        timeout=settings.vision_timeout,
    )


def _fixture(settings: Settings) -> FixtureVisionService:
    return FixtureVisionService()


# Supported providers
PROVIDERS = {
    VisionProvider.ANTHROPIC: _anthropic,
    VisionProvider.OPENAI: _openai,
    VisionProvider.FIXTURE: _fixture,
}

API_KEY_ENV = {
    VisionProvider.ANTHROPIC: "ANTHROPIC_API_KEY",
    VisionProvider.OPENAI: "OPENAI_API_KEY",
}


def build_vision_service(settings: Settings) -> VisionAnalysisService:
    """
    Build the configured vision analysis service.

    A provider without an API key becomes the fixture backend in dev mode and
    an explicit UnavailableVisionService otherwise.

    Args:
        settings: Application settings

    Returns:
        Configured VisionAnalysisService instance
    """
    provider = settings.vision_provider
    logger.info(f"Initializing vision provider: {provider.value}")

    if not settings.is_vision_configured:
        if settings.dev_mode:
            logger.warning(
                f"{API_KEY_ENV[provider]} not set, using fixture vision replies (dev mode)"
            )
            return FixtureVisionService()

        logger.warning(f"{API_KEY_ENV[provider]} not set, image analysis is unavailable")
        return UnavailableVisionService(
            provider=provider.value,
            reason=f"Image analysis is not configured ({API_KEY_ENV[provider]} is not set)",
        )

    return PROVIDERS[provider](settings)
