"""Core value types for the daily plan aggregator.

PlanItems are recomputed on every aggregation pass and never persisted.
Only order_key identifies an item across passes; every other field is
display data that may change between renderings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import StrEnum
from typing import Any


class PlanCategory(StrEnum):
    """Closed set of plan item categories."""

    RECURRING_ACTIVITY = "recurring_activity"
    ACTIVITY_LOG = "activity_log"
    MANUAL_EVENT = "manual_event"
    SYSTEM_SCHEDULED_TASK = "system_scheduled_task"
    DEFAULT_DAILY_TASK = "default_daily_task"
    MODULE_GATED_TASK = "module_gated_task"
    PROGRAM_SESSION = "program_session"
    MEAL = "meal"
    ATHLETE_EVENT = "athlete_event"


class OrderingPolicy(StrEnum):
    """Which ordering tier produced a day's final sequence."""

    DATE_LOCK = "date_lock"
    WEEK_OVERRIDE = "week_override"
    WEEKLY_LOCK = "weekly_lock"
    TIME = "time"


@dataclass(frozen=True)
class PlanItem:
    """One schedulable thing occurring on one day."""

    id: str
    date: date
    title: str
    category: PlanCategory
    source_id: str
    order_key: str | None
    description: str | None = None
    start_time: str | None = None  # HH:MM
    end_time: str | None = None
    all_day: bool = False
    completed: bool = False
    editable: bool = False
    deletable: bool = False
    module_gate: str | None = None
    color: str | None = None
    link: str | None = None
    sport: str | None = None
    activity_type: str | None = None


@dataclass(frozen=True)
class ScheduleEntry:
    """One slot of a weekly lock schedule."""

    task_id: str
    order: int
    display_time: str | None = None
    reminder_minutes: int | None = None
    reminder_enabled: bool = False

    @classmethod
    def from_json(cls, raw: Any) -> ScheduleEntry | None:
        """Parse a stored schedule entry.

        Stored entries use camelCase keys (taskId, order, displayTime, ...).
        Entries without a task id are malformed and yield None.
        """
        if not isinstance(raw, dict):
            return None
        task_id = raw.get("taskId") or raw.get("task_id")
        if not task_id:
            return None
        order = raw.get("order", 0)
        try:
            order = int(order)
        except (TypeError, ValueError):
            order = 0
        return cls(
            task_id=str(task_id),
            order=order,
            display_time=raw.get("displayTime") or raw.get("display_time"),
            reminder_minutes=raw.get("reminderMinutes") or raw.get("reminder_minutes"),
            reminder_enabled=bool(raw.get("reminderEnabled") or raw.get("reminder_enabled")),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "taskId": self.task_id,
            "order": self.order,
            "displayTime": self.display_time,
            "reminderMinutes": self.reminder_minutes,
            "reminderEnabled": self.reminder_enabled,
        }


def parse_schedule(raw: Any) -> tuple[ScheduleEntry, ...]:
    """Parse a stored JSON schedule, silently dropping malformed entries."""
    if not isinstance(raw, list):
        return ()
    entries = (ScheduleEntry.from_json(item) for item in raw)
    return tuple(entry for entry in entries if entry is not None)


@dataclass(frozen=True)
class DateLock:
    """User-saved fixed ordering for one exact calendar date."""

    date: date
    locked: bool
    order_keys: tuple[str, ...]


@dataclass(frozen=True)
class WeeklyLock:
    """User-saved fixed ordering recurring on every occurrence of a weekday."""

    day_of_week: int
    schedule: tuple[ScheduleEntry, ...]


@dataclass(frozen=True)
class WeekOverride:
    """Weekly lock schedule valid for exactly one concrete week."""

    day_of_week: int
    week_start: date
    schedule: tuple[ScheduleEntry, ...]


@dataclass
class DayPlan:
    """Final ordered items for one calendar day."""

    date: date
    day_of_week: int
    items: list[PlanItem]
    policy: OrderingPolicy = OrderingPolicy.TIME
    completed_count: int = 0
    total_count: int = 0


@dataclass
class PlanView:
    """Result of one aggregation pass over a date range."""

    start: date
    end: date
    days: dict[date, DayPlan]
    generation: int = 0
    failures: dict[str, str] = field(default_factory=dict)
    recap_anchor: date | None = None

    def items_for(self, day: date) -> list[PlanItem]:
        plan = self.days.get(day)
        return list(plan.items) if plan else []

    def order_keys_for(self, day: date) -> list[str | None]:
        return [item.order_key for item in self.items_for(day)]


def day_of_week(day: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


def week_start_for(day: date, starts_on: int = 0) -> date:
    """First day of the week containing `day`.

    Args:
        day: Any date in the week
        starts_on: Weekday (0 = Sunday .. 6 = Saturday) that starts a week

    Returns:
        The date of the week start on or before `day`
    """
    if not 0 <= starts_on <= 6:
        raise ValueError(f"starts_on must be in 0..6, got {starts_on}")
    offset = (day_of_week(day) - starts_on) % 7
    return day - timedelta(days=offset)


def days_in_range(start: date, end: date) -> list[date]:
    """Every calendar day in [start, end], inclusive."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def normalize_time(value: str | None) -> str | None:
    """Reduce stored times (HH:MM or HH:MM:SS) to HH:MM. Blank values are None."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    parts = value.split(":")
    if len(parts) >= 2 and parts[0].isdigit() and parts[1][:2].isdigit():
        return f"{int(parts[0]):02d}:{parts[1][:2]}"
    return value
