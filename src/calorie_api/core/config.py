"""Application configuration using Pydantic Settings."""

import tempfile
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VisionProvider(str, Enum):
    """Supported vision-language model backends."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    FIXTURE = "fixture"


class StoreBackend(str, Enum):
    """Supported meal/settings store backends."""
    MONGO = "mongo"
    MEMORY = "memory"


FIREBASE_JWKS_URL = (
    "https://www.googleapis.com/service_accounts/v1/jwk/"
    "securetoken@system.gserviceaccount.com"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    debug: bool = False
    app_name: str = "Calorie Tracker API"
    api_version: str = "1.0.0"
    log_level: str = "INFO"
    timezone: str = "UTC"  # Used for "today" and calendar day boundaries

    # Auth
    dev_mode: bool = False  # Skips token verification and uses a fixed dev identity
    dev_user_id: str = "dev-user-123"
    firebase_project_id: str = ""
    firebase_jwks_url: str = FIREBASE_JWKS_URL

    # Store
    store_backend: StoreBackend = StoreBackend.MEMORY
    mongo_uri: str = "mongodb://localhost:27017"
    db_name: str = "calorie_tracker"
    seed_fixture_meals: bool = False

    # Vision provider selection
    vision_provider: VisionProvider = VisionProvider.OPENAI
    vision_timeout: float = 60.0

    # Anthropic configuration
    anthropic_api_key: str = Field(
        "",
        validation_alias=AliasChoices("anthropic_api_key", "claude_api_key"),
    )
    anthropic_model: str = "claude-sonnet-4-5"

    # OpenAI configuration
    openai_api_key: str = ""
    openai_vision_model: str = "gpt-4o"
    openai_text_model: str = "gpt-4o"
    openai_image_model: str = "dall-e-3"
    generate_meal_images: bool = True  # Generate a thumbnail for description-only meals

    # Scratch directory for uploaded images
    upload_dir: Path = Path(tempfile.gettempdir()) / "calorie-tracker" / "uploads"

    @property
    def is_vision_configured(self) -> bool:
        """Check if the selected vision provider has credentials."""
        if self.vision_provider == VisionProvider.ANTHROPIC:
            return bool(self.anthropic_api_key)
        elif self.vision_provider == VisionProvider.OPENAI:
            return bool(self.openai_api_key)
        return self.vision_provider == VisionProvider.FIXTURE


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
