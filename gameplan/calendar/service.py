"""Daily plan aggregation service.

One instance per user session. It owns the current PlanView for the last
requested range and is the single place that reads plan sources:

- fetch_range / refresh run one fan-out pass over every source.
- Every pass takes a generation number; a pass that finishes after a newer
  pass has already been applied is discarded instead of overwriting it.
- Change notifications on any source table trigger a full refresh.
- Mutations (manual events and activity logs only) return a success flag
  and re-aggregate the loaded range on success. Failures leave the current
  view untouched and are not retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from itertools import count

from loguru import logger

from gameplan.calendar.aggregator import aggregate_plan, validate_range
from gameplan.calendar.game_plan import GamePlanSummary, build_game_plan
from gameplan.calendar.mutations import PlanMutations
from gameplan.calendar.notifications import ChangeEvent, ChangeNotifier, Subscription
from gameplan.calendar.schemas import ActivityLogCreate, ActivityLogUpdate, CalendarEventCreate, CalendarEventUpdate
from gameplan.calendar.sources import PlanSources, fetch_snapshot
from gameplan.calendar.types import PlanView
from gameplan.config.settings import settings

# Tables whose changes invalidate the current aggregation
WATCHED_TABLES: tuple[str, ...] = (
    "custom_activity_templates",
    "custom_activity_logs",
    "calendar_events",
    "athlete_events",
    "game_plan_task_schedule",
    "calendar_skipped_items",
    "sub_module_progress",
    "vault_meal_plans",
    "calendar_day_orders",
    "game_plan_locked_days",
    "game_plan_week_overrides",
    "user_modules",
    "vault_nutrition_logs",
    "videos",
)

PlanListener = Callable[[PlanView], None]


class DailyPlanService:
    """Aggregation service with refresh, subscribe and mutation operations."""

    def __init__(
        self,
        user_id: str,
        sources: PlanSources,
        mutations: PlanMutations | None = None,
        *,
        sport: str | None = None,
        today_provider: Callable[[], date] = date.today,
        week_starts_on: int | None = None,
        max_range_days: int | None = None,
        recap_cycle_days: int | None = None,
    ):
        self.user_id = user_id
        self._sources = sources
        self._mutations = mutations
        self.sport = sport or settings.default_sport
        self._today = today_provider
        self.week_starts_on = settings.week_starts_on if week_starts_on is None else week_starts_on
        self.max_range_days = settings.max_range_days if max_range_days is None else max_range_days
        self.recap_cycle_days = settings.recap_cycle_days if recap_cycle_days is None else recap_cycle_days

        self._generations = count(1)
        self._applied_generation = 0
        self._view: PlanView | None = None
        self._range: tuple[date, date] | None = None
        self._listeners: dict[int, PlanListener] = {}
        self._listener_ids = count(1)
        self._subscriptions: list[Subscription] = []
        self._pending: set[asyncio.Task] = set()
        self._in_flight = 0

    # State

    @property
    def view(self) -> PlanView | None:
        return self._view

    @property
    def current_range(self) -> tuple[date, date] | None:
        return self._range

    @property
    def applied_generation(self) -> int:
        return self._applied_generation

    @property
    def loading(self) -> bool:
        """True while any aggregation pass is in flight."""
        return self._in_flight > 0

    # Aggregation

    async def fetch_range(self, start: date, end: date) -> PlanView:
        """Aggregate [start, end] and make it the service's current range.

        Returns:
            The view produced by this pass. If a newer pass was applied while
            this one was in flight, the newer view is returned instead.

        Raises:
            PlanRangeError: If the range is reversed or exceeds max_range_days
        """
        validate_range(start, end, self.max_range_days)
        self._range = (start, end)
        generation = next(self._generations)
        self._in_flight += 1
        try:
            snapshot = await fetch_snapshot(self._sources, self.user_id, start, end)
            view = aggregate_plan(
                snapshot,
                start,
                end,
                today=self._today(),
                sport=self.sport,
                week_starts_on=self.week_starts_on,
                generation=generation,
            )
        finally:
            self._in_flight -= 1

        if generation < self._applied_generation:
            logger.debug(
                f"[PLAN] Discarding stale pass generation={generation} "
                f"(applied={self._applied_generation}) user={self.user_id}"
            )
            return self._view if self._view is not None else view

        self._applied_generation = generation
        self._view = view
        logger.info(
            f"[PLAN] Applied pass generation={generation} user={self.user_id} range={start}..{end} "
            f"items={sum(len(day.items) for day in view.days.values())}"
        )
        self._notify_listeners(view)
        return view

    async def refresh(self) -> PlanView | None:
        """Re-aggregate the last requested range. No-op before the first fetch."""
        if self._range is None:
            return None
        start, end = self._range
        return await self.fetch_range(start, end)

    def _notify_listeners(self, view: PlanView) -> None:
        for listener_id, listener in list(self._listeners.items()):
            try:
                listener(view)
            except Exception as e:
                logger.error(f"[PLAN] Plan listener {listener_id} failed: {e}")

    def subscribe(self, listener: PlanListener) -> Callable[[], None]:
        """Receive every applied PlanView. Returns an unsubscribe callable."""
        listener_id = next(self._listener_ids)
        self._listeners[listener_id] = listener

        def unsubscribe() -> None:
            self._listeners.pop(listener_id, None)

        return unsubscribe

    # Change notifications

    def attach(self, notifier: ChangeNotifier) -> None:
        """Refresh on any change to a watched table for this user."""
        for table in WATCHED_TABLES:
            self._subscriptions.append(notifier.subscribe(table, self._on_change, user_id=self.user_id))

    def _on_change(self, event: ChangeEvent) -> None:
        logger.debug(f"[PLAN] Change on {event.table} ({event.action}) user={self.user_id}; refreshing")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[PLAN] No running event loop; refresh deferred to next fetch")
            return
        task = loop.create_task(self.refresh())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def wait_for_pending(self) -> None:
        """Wait for refreshes triggered by change notifications to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        """Unsubscribe from change notifications and drop plan listeners."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._listeners.clear()

    # Mutations

    async def _mutate(self, description: str, operation: Callable[[], Awaitable[object]]) -> bool:
        if self._mutations is None:
            logger.error(f"[PLAN_MUTATE] No mutation store configured; cannot {description}")
            return False
        try:
            await operation()
        except Exception as e:
            logger.error(f"[PLAN_MUTATE] Failed to {description} for user={self.user_id}: {e}")
            return False
        await self.refresh()
        return True

    async def add_event(self, payload: CalendarEventCreate) -> bool:
        return await self._mutate("add calendar event", lambda: self._mutations.insert_event(self.user_id, payload))

    async def update_event(self, event_id: str, updates: CalendarEventUpdate) -> bool:
        return await self._mutate(
            f"update calendar event {event_id}",
            lambda: self._mutations.update_event(self.user_id, event_id, updates),
        )

    async def delete_event(self, event_id: str) -> bool:
        return await self._mutate(
            f"delete calendar event {event_id}",
            lambda: self._mutations.delete_event(self.user_id, event_id),
        )

    async def add_activity_log(self, payload: ActivityLogCreate) -> bool:
        return await self._mutate(
            "add activity log", lambda: self._mutations.insert_activity_log(self.user_id, payload)
        )

    async def update_activity_log(self, log_id: str, updates: ActivityLogUpdate) -> bool:
        return await self._mutate(
            f"update activity log {log_id}",
            lambda: self._mutations.update_activity_log(self.user_id, log_id, updates),
        )

    async def delete_activity_log(self, log_id: str) -> bool:
        return await self._mutate(
            f"delete activity log {log_id}",
            lambda: self._mutations.delete_activity_log(self.user_id, log_id),
        )

    async def set_log_completed(self, log_id: str, completed: bool) -> bool:
        return await self.update_activity_log(log_id, ActivityLogUpdate(completed=completed))

    # Game Plan

    async def game_plan(self, day: date | None = None) -> GamePlanSummary:
        """One day's tasks, progress and recap countdown.

        Uses the current view when it covers the day, otherwise aggregates
        just that day.
        """
        day = day or self._today()
        view = self._view
        if view is None or not (view.start <= day <= view.end):
            view = await self.fetch_range(day, day)
        return build_game_plan(view, day, view.recap_anchor, self.recap_cycle_days)
