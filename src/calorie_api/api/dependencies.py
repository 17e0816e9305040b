"""FastAPI dependency injection factories.

Long-lived handles (settings, stores, vision backend, token verifier) are
built once in `create_app()` and kept on `app.state`; these factories hand
them to routes and wrap them in per-request services.
"""

import logging
from typing import Annotated

from fastapi import Depends, Header, Request

from calorie_api.core.config import Settings
from calorie_api.core.exceptions import AuthenticationError
from calorie_api.core.security import AuthenticatedUser, TokenVerifier, bearer_token
from calorie_api.db.unit_of_work import UnitOfWork
from calorie_api.services.analysis import AnalysisService
from calorie_api.services.meals import MealService
from calorie_api.services.progress import ProgressService
from calorie_api.services.settings import SettingsService
from calorie_api.services.upload import UploadService
from calorie_api.services.vision import VisionAnalysisService
from calorie_api.utils.dates import get_zone

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the app was built with."""
    return request.app.state.settings


def get_uow(request: Request) -> UnitOfWork:
    """
    Get the Unit of Work built at startup.

    Returns:
        UnitOfWork instance
    """
    return request.app.state.uow


def get_vision(request: Request) -> VisionAnalysisService:
    """The vision backend selected at startup."""
    return request.app.state.vision


def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
UoWDep = Annotated[UnitOfWork, Depends(get_uow)]
VisionDep = Annotated[VisionAnalysisService, Depends(get_vision)]


def require_user(
    verifier: TokenVerifier = Depends(get_verifier),
    authorization: str | None = Header(None),
) -> AuthenticatedUser:
    """
    Resolve the caller from the bearer token.

    Sync so PyJWT's key fetch runs in the threadpool.

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    token = bearer_token(authorization)
    if token is None:
        user = verifier.anonymous()
        if user is None:
            raise AuthenticationError()
        return user
    return verifier.verify(token)


def optional_user(
    verifier: TokenVerifier = Depends(get_verifier),
    authorization: str | None = Header(None),
) -> AuthenticatedUser | None:
    """
    Resolve the caller if a valid token is present.

    Missing or invalid tokens are logged and ignored.
    """
    token = bearer_token(authorization)
    if token is None:
        return verifier.anonymous()
    try:
        return verifier.verify(token)
    except AuthenticationError as e:
        logger.warning(f"Ignoring invalid token on optional-auth route: {e.message}")
        return None


CurrentUserDep = Annotated[AuthenticatedUser, Depends(require_user)]
OptionalUserDep = Annotated[AuthenticatedUser | None, Depends(optional_user)]


def get_meal_service(uow: UoWDep, settings: SettingsDep) -> MealService:
    """
    Get MealService instance.

    Args:
        uow: Injected Unit of Work
        settings: App settings (for the day-boundary timezone)
    """
    return MealService(uow, tz=get_zone(settings.timezone))


def get_settings_service(uow: UoWDep) -> SettingsService:
    return SettingsService(uow)


def get_progress_service(uow: UoWDep, settings: SettingsDep) -> ProgressService:
    return ProgressService(uow, tz=get_zone(settings.timezone))


def get_analysis_service(vision: VisionDep, settings: SettingsDep) -> AnalysisService:
    """
    Get AnalysisService instance.

    Args:
        vision: Injected vision backend
        settings: App settings (scratch directory, image generation switch)
    """
    return AnalysisService(
        vision=vision,
        uploads=UploadService(settings.upload_dir),
        generate_meal_images=settings.generate_meal_images,
    )


# Type aliases for service dependencies
MealServiceDep = Annotated[MealService, Depends(get_meal_service)]
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]
AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
