"""Calendar API endpoints backed by the daily plan aggregator."""

from __future__ import annotations

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from gameplan.api.dependencies import get_current_user_id, get_lock_store, get_plan_service, get_skip_store
from gameplan.calendar.aggregator import PlanRangeError
from gameplan.calendar.locks import LockStore
from gameplan.calendar.schemas import (
    ActivityLogCreate,
    ActivityLogUpdate,
    CalendarEventCreate,
    CalendarEventUpdate,
    DayOrderRequest,
    DayPlanResponse,
    GamePlanResponse,
    LockDaysRequest,
    MutationResponse,
    PlanItemResponse,
    PlanRangeResponse,
    SkipDaysRequest,
)
from gameplan.calendar.service import DailyPlanService
from gameplan.calendar.skips import SkipStore

router = APIRouter(prefix="/calendar", tags=["calendar"])


def _bad_range(e: PlanRangeError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/days", response_model=PlanRangeResponse)
async def get_days(
    start: date = Query(...),
    end: date | None = Query(default=None),
    service: DailyPlanService = Depends(get_plan_service),
):
    """Ordered plan items for every day in [start, end].

    Args:
        start: First day (inclusive)
        end: Last day (inclusive); defaults to start + 6 days
        service: Plan service for the current user

    Returns:
        PlanRangeResponse with one entry per day and the names of sources
        that failed to load (their categories are empty)
    """
    end = end or start + timedelta(days=6)
    logger.info(f"[CALENDAR] GET /calendar/days user_id={service.user_id} range={start}..{end}")
    try:
        view = await service.fetch_range(start, end)
    except PlanRangeError as e:
        raise _bad_range(e) from e
    return PlanRangeResponse(
        start=view.start,
        end=view.end,
        days=[DayPlanResponse.from_day(view.days[day]) for day in sorted(view.days)],
        failed_sources=sorted(view.failures),
    )


@router.get("/game-plan", response_model=GamePlanResponse)
async def get_game_plan(
    day: date | None = Query(default=None),
    service: DailyPlanService = Depends(get_plan_service),
):
    summary = await service.game_plan(day)
    return GamePlanResponse(
        day=summary.day,
        tasks=[PlanItemResponse.from_item(item) for item in summary.tasks],
        completed_count=summary.completed_count,
        total_count=summary.total_count,
        days_until_recap=summary.recap.days_until_recap,
        recap_progress=summary.recap.recap_progress,
    )


# Manual events


@router.post("/events", response_model=MutationResponse)
async def create_event(payload: CalendarEventCreate, service: DailyPlanService = Depends(get_plan_service)):
    return MutationResponse(success=await service.add_event(payload))


@router.patch("/events/{event_id}", response_model=MutationResponse)
async def update_event(
    event_id: str, updates: CalendarEventUpdate, service: DailyPlanService = Depends(get_plan_service)
):
    return MutationResponse(success=await service.update_event(event_id, updates))


@router.delete("/events/{event_id}", response_model=MutationResponse)
async def delete_event(event_id: str, service: DailyPlanService = Depends(get_plan_service)):
    return MutationResponse(success=await service.delete_event(event_id))


# Activity logs


@router.post("/activity-logs", response_model=MutationResponse)
async def create_activity_log(payload: ActivityLogCreate, service: DailyPlanService = Depends(get_plan_service)):
    return MutationResponse(success=await service.add_activity_log(payload))


@router.patch("/activity-logs/{log_id}", response_model=MutationResponse)
async def update_activity_log(
    log_id: str, updates: ActivityLogUpdate, service: DailyPlanService = Depends(get_plan_service)
):
    return MutationResponse(success=await service.update_activity_log(log_id, updates))


@router.delete("/activity-logs/{log_id}", response_model=MutationResponse)
async def delete_activity_log(log_id: str, service: DailyPlanService = Depends(get_plan_service)):
    return MutationResponse(success=await service.delete_activity_log(log_id))


# Ordering locks


@router.put("/day-orders/{day}", response_model=MutationResponse)
async def save_day_order(
    day: date,
    request: DayOrderRequest,
    service: DailyPlanService = Depends(get_plan_service),
    locks: LockStore = Depends(get_lock_store),
):
    """Save a date lock. Keys that no longer match an item on that day are pruned.

    Pruning is skipped when any source failed to load, since the missing
    categories would make their keys look stale.
    """
    view = await service.fetch_range(day, day)
    known_keys: list[str] | None = [key for key in view.order_keys_for(day) if key]
    if view.failures:
        logger.warning(
            f"[CALENDAR] Saving day order for {day} without pruning; failed sources: {sorted(view.failures)}"
        )
        known_keys = None
    saved = locks.save_day_order(service.user_id, day, request.order_keys, request.locked, known_keys=known_keys)
    return MutationResponse(success=saved)


@router.delete("/day-orders/{day}", response_model=MutationResponse)
def delete_day_order(
    day: date,
    user_id: str = Depends(get_current_user_id),
    locks: LockStore = Depends(get_lock_store),
):
    return MutationResponse(success=locks.unlock_date(user_id, day))


@router.post("/day-orders/{day}/lock", response_model=MutationResponse)
def relock_day_order(
    day: date,
    user_id: str = Depends(get_current_user_id),
    locks: LockStore = Depends(get_lock_store),
):
    return MutationResponse(success=locks.relock_date(user_id, day))


@router.put("/locked-days", response_model=MutationResponse)
def lock_days(
    request: LockDaysRequest,
    user_id: str = Depends(get_current_user_id),
    locks: LockStore = Depends(get_lock_store),
):
    schedule = [entry.to_entry() for entry in request.schedule]
    return MutationResponse(success=locks.lock_days(user_id, request.days, schedule))


@router.delete("/locked-days", response_model=MutationResponse)
def unlock_days(
    days: list[int] = Query(...),
    user_id: str = Depends(get_current_user_id),
    locks: LockStore = Depends(get_lock_store),
):
    try:
        unlocked = locks.unlock_days(user_id, days)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MutationResponse(success=unlocked)


# Skips


@router.put("/skips", response_model=MutationResponse)
def update_skip_days(
    request: SkipDaysRequest,
    user_id: str = Depends(get_current_user_id),
    skips: SkipStore = Depends(get_skip_store),
):
    return MutationResponse(success=skips.update_skip_days(user_id, request.item_id, request.item_type, request.skip_days))
