"""User settings API routes."""

from fastapi import APIRouter

from calorie_api.api.dependencies import CurrentUserDep, SettingsServiceDep
from calorie_api.models.settings import SettingsResponse, UserSettings

router = APIRouter()


@router.get("", response_model=SettingsResponse)
async def get_settings(user: CurrentUserDep, service: SettingsServiceDep):
    """
    Get the caller's daily targets.

    Defaults to 2000 kcal; unset macro targets are derived from calories
    with a 30/50/20 protein/carbs/fats split.
    """
    settings = await service.get(user.uid)
    return SettingsResponse(data=settings)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    body: UserSettings,
    user: CurrentUserDep,
    service: SettingsServiceDep,
):
    """
    Replace the caller's daily targets.
    """
    settings = await service.update(user.uid, body)
    return SettingsResponse(data=settings)
