"""Ordering resolver.

For each day the effective ordering is chosen fresh:

1. Date lock: locked and with a non-empty key list.
2. Week override for (weekday, week start), else the weekly lock for the
   weekday, when its schedule is non-empty.
3. Ascending start time.

Under a lock, mapped items sort by position and come first; unmapped
items follow in start-time order. Untimed items sort after timed ones and
keep their input order. Lock keys with no matching item are ignored.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date

from gameplan.calendar.order_keys import schedule_entry_order_key
from gameplan.calendar.types import (
    DateLock,
    OrderingPolicy,
    PlanItem,
    ScheduleEntry,
    WeeklyLock,
    WeekOverride,
    day_of_week,
    week_start_for,
)


@dataclass
class LockIndex:
    """Lock records for one pass, indexed for per-day lookup."""

    date_locks: dict[date, DateLock]
    weekly_locks: dict[int, WeeklyLock]
    week_overrides: dict[tuple[int, date], WeekOverride]
    week_starts_on: int = 0

    @classmethod
    def build(
        cls,
        date_locks: Iterable[DateLock] = (),
        weekly_locks: Iterable[WeeklyLock] = (),
        week_overrides: Iterable[WeekOverride] = (),
        week_starts_on: int = 0,
    ) -> LockIndex:
        return cls(
            date_locks={lock.date: lock for lock in date_locks},
            weekly_locks={lock.day_of_week: lock for lock in weekly_locks},
            week_overrides={(o.day_of_week, o.week_start): o for o in week_overrides},
            week_starts_on=week_starts_on,
        )

    def date_lock_for(self, day: date) -> DateLock | None:
        lock = self.date_locks.get(day)
        if lock is None or not lock.locked or not lock.order_keys:
            return None
        return lock

    def weekly_schedule_for(self, day: date) -> tuple[OrderingPolicy, tuple[ScheduleEntry, ...]] | None:
        weekday = day_of_week(day)
        override = self.week_overrides.get((weekday, week_start_for(day, self.week_starts_on)))
        if override is not None and override.schedule:
            return OrderingPolicy.WEEK_OVERRIDE, override.schedule
        weekly = self.weekly_locks.get(weekday)
        if weekly is not None and weekly.schedule:
            return OrderingPolicy.WEEKLY_LOCK, weekly.schedule
        return None


def _time_key(item: PlanItem) -> tuple[int, str]:
    if item.start_time:
        return (0, item.start_time)
    return (1, "")


def sort_by_time(items: Iterable[PlanItem]) -> list[PlanItem]:
    """Stable ascending sort by start time with untimed items last."""
    return sorted(items, key=_time_key)


def positions_from_keys(order_keys: Iterable[str]) -> dict[str, int]:
    """Position map from an ordered key list; the first occurrence of a key wins."""
    positions: dict[str, int] = {}
    for key in order_keys:
        if key and key not in positions:
            positions[key] = len(positions)
    return positions


def positions_from_schedule(schedule: Iterable[ScheduleEntry]) -> dict[str, int]:
    """Position map from a weekly schedule, sorted by each entry's own order field."""
    ordered = sorted(schedule, key=lambda entry: entry.order)
    return positions_from_keys(
        key for key in (schedule_entry_order_key(entry.task_id) for entry in ordered) if key is not None
    )


def sort_with_positions(items: Iterable[PlanItem], positions: Mapping[str, int]) -> list[PlanItem]:
    """Mapped items by position first, then unmapped items by time."""

    def key(item: PlanItem) -> tuple[int, int, int, str]:
        if item.order_key is not None and item.order_key in positions:
            return (0, positions[item.order_key], 0, "")
        timed, start = _time_key(item)
        return (1, 0, timed, start)

    return sorted(items, key=key)


def _apply_display_times(items: list[PlanItem], schedule: Iterable[ScheduleEntry]) -> list[PlanItem]:
    """Show a weekly schedule's display time on the items it maps."""
    times = {}
    for entry in schedule:
        key = schedule_entry_order_key(entry.task_id)
        if key is not None and entry.display_time and key not in times:
            times[key] = entry.display_time
    if not times:
        return items
    return [replace(item, start_time=times[item.order_key]) if item.order_key in times else item for item in items]


def resolve_day_order(
    day: date,
    items: Iterable[PlanItem],
    locks: LockIndex | None = None,
) -> tuple[list[PlanItem], OrderingPolicy]:
    """Resolve the final ordered sequence for one day.

    Args:
        day: Calendar day being ordered
        items: The day's items in insertion order
        locks: Lock records for the pass (None means no locks)

    Returns:
        Tuple of (ordered items, policy that produced the order)
    """
    items = list(items)
    if locks is None:
        return sort_by_time(items), OrderingPolicy.TIME

    date_lock = locks.date_lock_for(day)
    if date_lock is not None:
        return sort_with_positions(items, positions_from_keys(date_lock.order_keys)), OrderingPolicy.DATE_LOCK

    weekly = locks.weekly_schedule_for(day)
    if weekly is not None:
        policy, schedule = weekly
        positions = positions_from_schedule(schedule)
        if positions:
            ordered = sort_with_positions(items, positions)
            return _apply_display_times(ordered, schedule), policy

    return sort_by_time(items), OrderingPolicy.TIME
