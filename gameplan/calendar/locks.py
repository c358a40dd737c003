"""Ordering lock store.

Three kinds of lock, read back by SqlPlanSources and resolved by the
ordering module:

- date locks (calendar_day_orders): exact order keys for one date
- weekly locks (game_plan_locked_days): schedule for every occurrence of a weekday
- week overrides (game_plan_week_overrides): weekly schedule for one concrete week

Writes return True on success and publish a change for the written table.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone

from loguru import logger
from sqlalchemy import delete, select

from gameplan.calendar.notifications import ChangeEvent, ChangeNotifier
from gameplan.calendar.types import ScheduleEntry, day_of_week, week_start_for
from gameplan.db.models import CalendarDayOrder, GamePlanLockedDay, GamePlanWeekOverride
from gameplan.db.session import get_session


def _valid_weekdays(days: Iterable[int]) -> list[int]:
    weekdays = sorted({int(day) for day in days})
    for day in weekdays:
        if not 0 <= day <= 6:
            raise ValueError(f"day_of_week must be in 0..6, got {day}")
    return weekdays


def clean_order_keys(order_keys: Iterable[str], known_keys: Iterable[str] | None = None) -> list[str]:
    """Drop duplicates and, when known_keys is given, keys that no longer match an item."""
    known = set(known_keys) if known_keys is not None else None
    cleaned: list[str] = []
    seen: set[str] = set()
    for key in order_keys:
        if not key or key in seen:
            continue
        if known is not None and key not in known:
            continue
        seen.add(key)
        cleaned.append(key)
    return cleaned


def serialize_schedule(schedule: Iterable[ScheduleEntry]) -> list[dict]:
    return [entry.to_json() for entry in schedule]


class LockStore:
    """Writes date locks, weekly locks and week overrides for one database."""

    def __init__(
        self,
        notifier: ChangeNotifier | None = None,
        session_factory: Callable = get_session,
        week_starts_on: int = 0,
    ):
        self._notifier = notifier
        self._session_factory = session_factory
        self.week_starts_on = week_starts_on

    def _publish(self, table: str, user_id: str, action: str = "UPDATE") -> None:
        if self._notifier is not None:
            self._notifier.publish(ChangeEvent(table=table, action=action, user_id=user_id))

    # Date locks

    def save_day_order(
        self,
        user_id: str,
        day: date,
        order_keys: Iterable[str],
        locked: bool = True,
        known_keys: Iterable[str] | None = None,
    ) -> bool:
        """Upsert the date lock for one day.

        Args:
            user_id: Owner of the lock
            day: Calendar date the lock applies to
            order_keys: Keys in the desired display order
            locked: Whether the stored order is enforced
            known_keys: Keys currently displayed for the day; stale keys not
                in this set are pruned before saving

        Returns:
            True on success, False if the write failed
        """
        keys = clean_order_keys(order_keys, known_keys)
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(CalendarDayOrder).where(
                        CalendarDayOrder.user_id == user_id,
                        CalendarDayOrder.event_date == day,
                    )
                ).scalar_one_or_none()
                if existing is None:
                    session.add(CalendarDayOrder(user_id=user_id, event_date=day, locked=locked, order_keys=keys))
                else:
                    existing.order_keys = keys
                    existing.locked = locked
                    existing.updated_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to save day order for {day}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Saved day order user={user_id} date={day} locked={locked} keys={len(keys)}")
        self._publish("calendar_day_orders", user_id)
        return True

    def unlock_date(self, user_id: str, day: date) -> bool:
        """Stop enforcing the date lock for one day.

        The stored order keys are kept so the order can be locked again
        later. Missing locks are not an error.
        """
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(CalendarDayOrder).where(
                        CalendarDayOrder.user_id == user_id,
                        CalendarDayOrder.event_date == day,
                    )
                ).scalar_one_or_none()
                if existing is None:
                    return True
                existing.locked = False
                existing.updated_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to unlock date {day}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Unlocked date user={user_id} date={day}")
        self._publish("calendar_day_orders", user_id)
        return True

    def relock_date(self, user_id: str, day: date) -> bool:
        """Enforce a previously saved date lock again, keeping its stored order.

        Returns:
            True when a stored order was locked, False when none exists or the
            write failed
        """
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(CalendarDayOrder).where(
                        CalendarDayOrder.user_id == user_id,
                        CalendarDayOrder.event_date == day,
                    )
                ).scalar_one_or_none()
                if existing is None or not existing.order_keys:
                    return False
                existing.locked = True
                existing.updated_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to relock date {day}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Relocked date user={user_id} date={day}")
        self._publish("calendar_day_orders", user_id)
        return True

    # Weekly locks

    def lock_days(self, user_id: str, days: Iterable[int], schedule: Iterable[ScheduleEntry]) -> bool:
        """Lock the given weekdays to one schedule, replacing existing locks."""
        weekdays = _valid_weekdays(days)
        if not weekdays:
            return False
        serialized = serialize_schedule(schedule)
        now = datetime.now(timezone.utc)
        try:
            with self._session_factory() as session:
                existing = {
                    row.day_of_week: row
                    for row in session.execute(
                        select(GamePlanLockedDay).where(
                            GamePlanLockedDay.user_id == user_id,
                            GamePlanLockedDay.day_of_week.in_(weekdays),
                        )
                    ).scalars()
                }
                for weekday in weekdays:
                    row = existing.get(weekday)
                    if row is None:
                        session.add(
                            GamePlanLockedDay(
                                user_id=user_id, day_of_week=weekday, schedule=serialized, locked_at=now, updated_at=now
                            )
                        )
                    else:
                        row.schedule = serialized
                        row.locked_at = now
                        row.updated_at = now
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to lock days {weekdays}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Locked weekdays {weekdays} user={user_id} entries={len(serialized)}")
        self._publish("game_plan_locked_days", user_id)
        return True

    def unlock_days(self, user_id: str, days: Iterable[int]) -> bool:
        weekdays = _valid_weekdays(days)
        if not weekdays:
            return False
        try:
            with self._session_factory() as session:
                result = session.execute(
                    delete(GamePlanLockedDay).where(
                        GamePlanLockedDay.user_id == user_id,
                        GamePlanLockedDay.day_of_week.in_(weekdays),
                    )
                )
                # Bulk deletes bypass the unit of work
                session.commit()
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to unlock days {weekdays}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Unlocked weekdays {weekdays} user={user_id} removed={result.rowcount}")
        self._publish("game_plan_locked_days", user_id, "DELETE")
        return True

    def update_locked_schedule(self, user_id: str, days: Iterable[int], schedule: Iterable[ScheduleEntry]) -> bool:
        """Replace the schedule of weekdays that are already locked. Unlocked days are left alone."""
        weekdays = _valid_weekdays(days)
        if not weekdays:
            return False
        serialized = serialize_schedule(schedule)
        updated = 0
        try:
            with self._session_factory() as session:
                rows = session.execute(
                    select(GamePlanLockedDay).where(
                        GamePlanLockedDay.user_id == user_id,
                        GamePlanLockedDay.day_of_week.in_(weekdays),
                    )
                ).scalars()
                for row in rows:
                    row.schedule = serialized
                    row.updated_at = datetime.now(timezone.utc)
                    updated += 1
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to update locked schedule for {weekdays}: {e}")
            return False
        if updated:
            self._publish("game_plan_locked_days", user_id)
        return True

    # Week overrides

    def save_week_override(
        self, user_id: str, day: date, schedule: Iterable[ScheduleEntry], week_start: date | None = None
    ) -> bool:
        """Override the weekly schedule of day's weekday for the week containing day."""
        week_start = week_start or week_start_for(day, self.week_starts_on)
        weekday = day_of_week(day)
        serialized = serialize_schedule(schedule)
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(GamePlanWeekOverride).where(
                        GamePlanWeekOverride.user_id == user_id,
                        GamePlanWeekOverride.day_of_week == weekday,
                        GamePlanWeekOverride.week_start == week_start,
                    )
                ).scalar_one_or_none()
                if existing is None:
                    session.add(
                        GamePlanWeekOverride(
                            user_id=user_id, day_of_week=weekday, week_start=week_start, override_schedule=serialized
                        )
                    )
                else:
                    existing.override_schedule = serialized
                    existing.updated_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to save week override for {day}: {e}")
            return False
        logger.info(f"[PLAN_LOCKS] Saved week override user={user_id} weekday={weekday} week_start={week_start}")
        self._publish("game_plan_week_overrides", user_id)
        return True

    def clear_week_override(self, user_id: str, day: date, week_start: date | None = None) -> bool:
        week_start = week_start or week_start_for(day, self.week_starts_on)
        weekday = day_of_week(day)
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(GamePlanWeekOverride).where(
                        GamePlanWeekOverride.user_id == user_id,
                        GamePlanWeekOverride.day_of_week == weekday,
                        GamePlanWeekOverride.week_start == week_start,
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    session.delete(existing)
        except Exception as e:
            logger.error(f"[PLAN_LOCKS] Failed to clear week override for {day}: {e}")
            return False
        self._publish("game_plan_week_overrides", user_id, "DELETE")
        return True
