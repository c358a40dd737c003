"""Source readers.

One read-only reader per source category. All readers of a pass run
concurrently; a failing reader contributes an empty result for its
category and is reported once in the snapshot's failures, so a transient
error in one category never blanks the whole calendar.

Templates, schedules, skips, locks and capabilities are read regardless
of the range; range filtering happens during expansion.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import date, datetime, time, timedelta

from loguru import logger
from sqlalchemy import func, or_, select

from gameplan.calendar.capabilities import CapabilitySet
from gameplan.calendar.records import (
    ActivityLogRecord,
    AthleteEventRecord,
    ManualEventRecord,
    MealRecord,
    ProgramProgressRecord,
    SkipRecord,
    SourceSnapshot,
    TaskScheduleRecord,
    TemplateRecord,
    as_day_tuple,
)
from gameplan.calendar.types import DateLock, WeeklyLock, WeekOverride, parse_schedule
from gameplan.db.models import (
    AthleteEvent,
    CalendarDayOrder,
    CalendarEvent,
    CalendarSkippedItem,
    CustomActivityLog,
    CustomActivityTemplate,
    GamePlanLockedDay,
    GamePlanTaskSchedule,
    GamePlanWeekOverride,
    MealPlan,
    SubModuleProgress,
    UserModule,
    VaultNutritionLog,
    VaultStreak,
    Video,
)
from gameplan.db.session import get_session


class PlanSources(ABC):
    """Read interface for every plan source category."""

    @abstractmethod
    async def fetch_templates(self, user_id: str, start: date, end: date) -> list[TemplateRecord]: ...

    @abstractmethod
    async def fetch_activity_logs(self, user_id: str, start: date, end: date) -> list[ActivityLogRecord]: ...

    @abstractmethod
    async def fetch_manual_events(self, user_id: str, start: date, end: date) -> list[ManualEventRecord]: ...

    @abstractmethod
    async def fetch_athlete_events(self, user_id: str, start: date, end: date) -> list[AthleteEventRecord]: ...

    @abstractmethod
    async def fetch_task_schedules(self, user_id: str, start: date, end: date) -> list[TaskScheduleRecord]: ...

    @abstractmethod
    async def fetch_skips(self, user_id: str, start: date, end: date) -> list[SkipRecord]: ...

    @abstractmethod
    async def fetch_program_progress(self, user_id: str, start: date, end: date) -> list[ProgramProgressRecord]: ...

    @abstractmethod
    async def fetch_meals(self, user_id: str, start: date, end: date) -> list[MealRecord]: ...

    @abstractmethod
    async def fetch_date_locks(self, user_id: str, start: date, end: date) -> list[DateLock]: ...

    @abstractmethod
    async def fetch_weekly_locks(self, user_id: str, start: date, end: date) -> list[WeeklyLock]: ...

    @abstractmethod
    async def fetch_week_overrides(self, user_id: str, start: date, end: date) -> list[WeekOverride]: ...

    @abstractmethod
    async def fetch_capabilities(self, user_id: str, start: date, end: date) -> CapabilitySet: ...

    @abstractmethod
    async def fetch_completion_markers(self, user_id: str, start: date, end: date) -> dict[str, set[date]]: ...

    @abstractmethod
    async def fetch_recap_anchor(self, user_id: str, start: date, end: date) -> date | None: ...


# Snapshot field -> reader method
SNAPSHOT_READERS: tuple[tuple[str, str], ...] = (
    ("templates", "fetch_templates"),
    ("activity_logs", "fetch_activity_logs"),
    ("manual_events", "fetch_manual_events"),
    ("athlete_events", "fetch_athlete_events"),
    ("task_schedules", "fetch_task_schedules"),
    ("skips", "fetch_skips"),
    ("program_progress", "fetch_program_progress"),
    ("meals", "fetch_meals"),
    ("date_locks", "fetch_date_locks"),
    ("weekly_locks", "fetch_weekly_locks"),
    ("week_overrides", "fetch_week_overrides"),
    ("capabilities", "fetch_capabilities"),
    ("completion_markers", "fetch_completion_markers"),
    ("recap_anchor", "fetch_recap_anchor"),
)


async def fetch_snapshot(sources: PlanSources, user_id: str, start: date, end: date) -> SourceSnapshot:
    """Run every reader concurrently and collect their results.

    Failed readers leave their category at its empty default. Failures are
    logged once as an aggregate warning and never raised.
    """
    results = await asyncio.gather(
        *(getattr(sources, method)(user_id, start, end) for _, method in SNAPSHOT_READERS),
        return_exceptions=True,
    )

    snapshot = SourceSnapshot()
    for (field_name, _), result in zip(SNAPSHOT_READERS, results, strict=True):
        if isinstance(result, Exception):
            snapshot.failures[field_name] = f"{type(result).__name__}: {result}"
            continue
        if isinstance(result, BaseException):
            raise result
        if result is None and field_name != "recap_anchor":
            continue
        setattr(snapshot, field_name, result)

    if snapshot.failures:
        logger.warning(
            f"[PLAN_SOURCES] {len(snapshot.failures)} source(s) failed for user={user_id} "
            f"range={start}..{end}; treated as empty: {snapshot.failures}"
        )
    return snapshot


def _template_record(row: CustomActivityTemplate) -> TemplateRecord:
    return TemplateRecord(
        id=row.id,
        title=row.title,
        display_nickname=row.display_nickname,
        description=row.description,
        activity_type=row.activity_type or "custom",
        color=row.color,
        sport=row.sport,
        recurring_days=as_day_tuple(row.recurring_days),
        display_days=as_day_tuple(row.display_days),
        display_time=row.display_time,
        display_on_game_plan=bool(row.display_on_game_plan),
    )


class SqlPlanSources(PlanSources):
    """SQLAlchemy-backed readers.

    Each reader opens its own session and runs on a worker thread, so the
    readers of one pass do not share a connection.
    """

    def __init__(self, sport: str = "baseball", session_factory: Callable = get_session):
        self.sport = sport
        self._session_factory = session_factory

    async def _run(self, reader: Callable, *args):
        return await asyncio.to_thread(reader, *args)

    # Templates and logs

    def _read_templates(self, user_id: str) -> list[TemplateRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CustomActivityTemplate).where(
                    CustomActivityTemplate.user_id == user_id,
                    or_(CustomActivityTemplate.sport == self.sport, CustomActivityTemplate.sport.is_(None)),
                )
            ).scalars().all()
            return [_template_record(row) for row in rows]

    async def fetch_templates(self, user_id: str, start: date, end: date) -> list[TemplateRecord]:
        return await self._run(self._read_templates, user_id)

    def _read_activity_logs(self, user_id: str, start: date, end: date) -> list[ActivityLogRecord]:
        with self._session_factory() as session:
            logs = session.execute(
                select(CustomActivityLog).where(
                    CustomActivityLog.user_id == user_id,
                    CustomActivityLog.entry_date >= start,
                    CustomActivityLog.entry_date <= end,
                )
            ).scalars().all()
            template_ids = {log.template_id for log in logs if log.template_id}
            templates: dict[str, TemplateRecord] = {}
            if template_ids:
                rows = session.execute(
                    select(CustomActivityTemplate).where(CustomActivityTemplate.id.in_(template_ids))
                ).scalars().all()
                templates = {row.id: _template_record(row) for row in rows}
            return [
                ActivityLogRecord(
                    id=log.id,
                    entry_date=log.entry_date,
                    template_id=log.template_id,
                    start_time=log.start_time,
                    notes=log.notes,
                    completed=bool(log.completed),
                    template=templates.get(log.template_id) if log.template_id else None,
                )
                for log in logs
            ]

    async def fetch_activity_logs(self, user_id: str, start: date, end: date) -> list[ActivityLogRecord]:
        return await self._run(self._read_activity_logs, user_id, start, end)

    # Events

    def _read_manual_events(self, user_id: str, start: date, end: date) -> list[ManualEventRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CalendarEvent).where(
                    CalendarEvent.user_id == user_id,
                    CalendarEvent.event_date >= start,
                    CalendarEvent.event_date <= end,
                )
            ).scalars().all()
            return [
                ManualEventRecord(
                    id=row.id,
                    event_date=row.event_date,
                    title=row.title,
                    event_type=row.event_type,
                    description=row.description,
                    start_time=row.start_time,
                    end_time=row.end_time,
                    all_day=bool(row.all_day),
                    color=row.color,
                    sport=row.sport,
                )
                for row in rows
            ]

    async def fetch_manual_events(self, user_id: str, start: date, end: date) -> list[ManualEventRecord]:
        return await self._run(self._read_manual_events, user_id, start, end)

    def _read_athlete_events(self, user_id: str, start: date, end: date) -> list[AthleteEventRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(AthleteEvent).where(
                    AthleteEvent.user_id == user_id,
                    AthleteEvent.event_date >= start,
                    AthleteEvent.event_date <= end,
                )
            ).scalars().all()
            return [
                AthleteEventRecord(
                    id=row.id,
                    event_date=row.event_date,
                    event_type=row.event_type,
                    event_time=row.event_time,
                    notes=row.notes,
                    sport=row.sport,
                )
                for row in rows
            ]

    async def fetch_athlete_events(self, user_id: str, start: date, end: date) -> list[AthleteEventRecord]:
        return await self._run(self._read_athlete_events, user_id, start, end)

    # Schedules, skips, programs, meals

    def _read_task_schedules(self, user_id: str) -> list[TaskScheduleRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(GamePlanTaskSchedule).where(GamePlanTaskSchedule.user_id == user_id)
            ).scalars().all()
            return [
                TaskScheduleRecord(
                    task_id=row.task_id,
                    display_days=as_day_tuple(row.display_days),
                    display_time=row.display_time,
                )
                for row in rows
            ]

    async def fetch_task_schedules(self, user_id: str, start: date, end: date) -> list[TaskScheduleRecord]:
        return await self._run(self._read_task_schedules, user_id)

    def _read_skips(self, user_id: str) -> list[SkipRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CalendarSkippedItem).where(CalendarSkippedItem.user_id == user_id)
            ).scalars().all()
            return [
                SkipRecord(
                    item_id=row.item_id,
                    item_type=row.item_type,
                    skip_days=as_day_tuple(row.skip_days) or (),
                )
                for row in rows
            ]

    async def fetch_skips(self, user_id: str, start: date, end: date) -> list[SkipRecord]:
        return await self._run(self._read_skips, user_id)

    def _read_program_progress(self, user_id: str) -> list[ProgramProgressRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(SubModuleProgress).where(
                    SubModuleProgress.user_id == user_id,
                    SubModuleProgress.sport == self.sport,
                )
            ).scalars().all()
            return [
                ProgramProgressRecord(
                    sub_module=row.sub_module,
                    module=row.module,
                    sport=row.sport,
                    current_week=row.current_week,
                    current_day=row.current_day,
                    last_workout_date=row.last_workout_date,
                )
                for row in rows
            ]

    async def fetch_program_progress(self, user_id: str, start: date, end: date) -> list[ProgramProgressRecord]:
        return await self._run(self._read_program_progress, user_id)

    def _read_meals(self, user_id: str, start: date, end: date) -> list[MealRecord]:
        with self._session_factory() as session:
            rows = session.execute(
                select(MealPlan).where(
                    MealPlan.user_id == user_id,
                    MealPlan.planned_date >= start,
                    MealPlan.planned_date <= end,
                )
            ).scalars().all()
            return [
                MealRecord(
                    id=row.id,
                    planned_date=row.planned_date,
                    meal_type=row.meal_type,
                    meal_name=row.meal_name,
                    planned_time=row.planned_time,
                    completed=bool(row.completed),
                )
                for row in rows
            ]

    async def fetch_meals(self, user_id: str, start: date, end: date) -> list[MealRecord]:
        return await self._run(self._read_meals, user_id, start, end)

    # Locks

    def _read_date_locks(self, user_id: str, start: date, end: date) -> list[DateLock]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CalendarDayOrder).where(
                    CalendarDayOrder.user_id == user_id,
                    CalendarDayOrder.event_date >= start,
                    CalendarDayOrder.event_date <= end,
                )
            ).scalars().all()
            return [
                DateLock(
                    date=row.event_date,
                    locked=bool(row.locked),
                    order_keys=tuple(str(key) for key in row.order_keys or ()),
                )
                for row in rows
            ]

    async def fetch_date_locks(self, user_id: str, start: date, end: date) -> list[DateLock]:
        return await self._run(self._read_date_locks, user_id, start, end)

    def _read_weekly_locks(self, user_id: str) -> list[WeeklyLock]:
        with self._session_factory() as session:
            rows = session.execute(
                select(GamePlanLockedDay).where(GamePlanLockedDay.user_id == user_id)
            ).scalars().all()
            return [WeeklyLock(day_of_week=row.day_of_week, schedule=parse_schedule(row.schedule)) for row in rows]

    async def fetch_weekly_locks(self, user_id: str, start: date, end: date) -> list[WeeklyLock]:
        return await self._run(self._read_weekly_locks, user_id)

    def _read_week_overrides(self, user_id: str, start: date, end: date) -> list[WeekOverride]:
        with self._session_factory() as session:
            rows = session.execute(
                select(GamePlanWeekOverride).where(
                    GamePlanWeekOverride.user_id == user_id,
                    GamePlanWeekOverride.week_start >= start - timedelta(days=6),
                    GamePlanWeekOverride.week_start <= end,
                )
            ).scalars().all()
            return [
                WeekOverride(
                    day_of_week=row.day_of_week,
                    week_start=row.week_start,
                    schedule=parse_schedule(row.override_schedule),
                )
                for row in rows
            ]

    async def fetch_week_overrides(self, user_id: str, start: date, end: date) -> list[WeekOverride]:
        return await self._run(self._read_week_overrides, user_id, start, end)

    # Capabilities, completion, recap

    def _read_capabilities(self, user_id: str) -> CapabilitySet:
        with self._session_factory() as session:
            modules = session.execute(select(UserModule.module).where(UserModule.user_id == user_id)).scalars().all()
            return CapabilitySet.of(modules)

    async def fetch_capabilities(self, user_id: str, start: date, end: date) -> CapabilitySet:
        return await self._run(self._read_capabilities, user_id)

    def _read_completion_markers(self, user_id: str, start: date, end: date) -> dict[str, set[date]]:
        with self._session_factory() as session:
            nutrition = session.execute(
                select(VaultNutritionLog.entry_date).where(
                    VaultNutritionLog.user_id == user_id,
                    VaultNutritionLog.entry_date >= start,
                    VaultNutritionLog.entry_date <= end,
                )
            ).scalars().all()
            videos = session.execute(
                select(Video.created_at).where(
                    Video.user_id == user_id,
                    or_(Video.sport == self.sport, Video.sport.is_(None)),
                    Video.created_at >= datetime.combine(start, time.min),
                    Video.created_at < datetime.combine(end + timedelta(days=1), time.min),
                )
            ).scalars().all()
            return {
                "nutrition": set(nutrition),
                "video": {created_at.date() for created_at in videos},
            }

    async def fetch_completion_markers(self, user_id: str, start: date, end: date) -> dict[str, set[date]]:
        return await self._run(self._read_completion_markers, user_id, start, end)

    def _read_recap_anchor(self, user_id: str) -> date | None:
        with self._session_factory() as session:
            streak_start = session.execute(
                select(VaultStreak.created_at).where(VaultStreak.user_id == user_id)
            ).scalar_one_or_none()
            if streak_start is not None:
                return streak_start.date()
            first_module = session.execute(
                select(func.min(UserModule.created_at)).where(UserModule.user_id == user_id)
            ).scalar_one_or_none()
            return first_module.date() if first_module is not None else None

    async def fetch_recap_anchor(self, user_id: str, start: date, end: date) -> date | None:
        return await self._run(self._read_recap_anchor, user_id)
