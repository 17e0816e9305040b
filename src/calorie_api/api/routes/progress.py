"""Progress API routes - today's totals and the calendar heatmap."""

from fastapi import APIRouter, Query

from calorie_api.api.dependencies import CurrentUserDep, ProgressServiceDep
from calorie_api.models.progress import CalendarMonthResponse, DailyProgressResponse
from calorie_api.utils.dates import today

router = APIRouter()


@router.get("/today", response_model=DailyProgressResponse)
async def get_today(user: CurrentUserDep, service: ProgressServiceDep):
    """
    Get today's intake against the caller's targets.
    """
    progress = await service.daily(user.uid)
    return DailyProgressResponse(data=progress)


@router.get("/calendar", response_model=CalendarMonthResponse)
async def get_calendar(
    user: CurrentUserDep,
    service: ProgressServiceDep,
    year: int | None = Query(None, ge=1970, le=9999, description="Defaults to this year"),
    month: int | None = Query(None, ge=1, le=12, description="Defaults to this month"),
):
    """
    Get per-day calories and status for a month.

    Status per day: `none`, `under` (<80% of target), `on_target` (80-100%),
    `over` (100-120%) or `well_over` (>120%).
    """
    current = today(service.tz)
    calendar = await service.calendar(user.uid, year or current.year, month or current.month)
    return CalendarMonthResponse(data=calendar)
