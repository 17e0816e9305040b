"""Meal log API routes."""

from fastapi import APIRouter, Query, status

from calorie_api.api.dependencies import CurrentUserDep, MealServiceDep
from calorie_api.models.meal import MealCreate, MealListResponse, MealResponse, MessageResponse

router = APIRouter()


@router.get("", response_model=MealListResponse)
async def list_meals(user: CurrentUserDep, service: MealServiceDep):
    """
    Get all of the caller's meals, newest first.
    """
    meals = await service.list_meals(user.uid)
    return MealListResponse(data=meals)


@router.get("/today", response_model=MealListResponse)
async def list_today(user: CurrentUserDep, service: MealServiceDep):
    """
    Get the meals logged today (server timezone), newest first.
    """
    meals = await service.meals_for_day(user.uid)
    return MealListResponse(data=meals)


@router.get("/range", response_model=MealListResponse)
async def list_range(
    user: CurrentUserDep,
    service: MealServiceDep,
    start: int = Query(..., ge=0, description="Range start, epoch ms (inclusive)"),
    end: int = Query(..., ge=0, description="Range end, epoch ms (exclusive)"),
):
    """
    Get meals with `start <= timestamp < end`, newest first.
    """
    meals = await service.meals_in_range(user.uid, start, end)
    return MealListResponse(data=meals)


@router.post("", response_model=MealResponse, status_code=status.HTTP_201_CREATED)
async def add_meal(body: MealCreate, user: CurrentUserDep, service: MealServiceDep):
    """
    Log a meal.

    - **name** and **calories** are required (calories must be non-zero)
    - **timestamp** defaults to now, **imageUrl** to the placeholder image
    """
    meal = await service.add_meal(user.uid, body)
    return MealResponse(data=meal)


@router.delete("/{meal_id}", response_model=MessageResponse)
async def delete_meal(meal_id: str, user: CurrentUserDep, service: MealServiceDep):
    """
    Delete one of the caller's meals.

    Returns 404 for an unknown id and 403 for someone else's meal.
    """
    await service.delete_meal(meal_id, user.uid)
    return MessageResponse(message="Meal deleted")


@router.delete("", response_model=MessageResponse)
async def clear_meals(user: CurrentUserDep, service: MealServiceDep):
    """
    Delete all of the caller's meals.
    """
    await service.clear_meals(user.uid)
    return MessageResponse(message="All meals cleared")
