"""Raw source records returned by the source readers.

Readers convert storage rows into these plain frozen records inside
their own session, so normalization never touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from gameplan.calendar.capabilities import CapabilitySet
from gameplan.calendar.types import DateLock, WeeklyLock, WeekOverride


@dataclass(frozen=True)
class TemplateRecord:
    id: str
    title: str
    display_nickname: str | None = None
    description: str | None = None
    activity_type: str = "custom"
    color: str | None = None
    sport: str | None = None
    recurring_days: tuple[int, ...] | None = None
    display_days: tuple[int, ...] | None = None
    display_time: str | None = None
    display_on_game_plan: bool = True

    @property
    def display_title(self) -> str:
        return self.display_nickname or self.title


@dataclass(frozen=True)
class ActivityLogRecord:
    id: str
    entry_date: date
    template_id: str | None = None
    start_time: str | None = None
    notes: str | None = None
    completed: bool = False
    template: TemplateRecord | None = None


@dataclass(frozen=True)
class ManualEventRecord:
    id: str
    event_date: date
    title: str
    event_type: str = "general"
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    all_day: bool = False
    color: str | None = None
    sport: str | None = None


@dataclass(frozen=True)
class AthleteEventRecord:
    id: str
    event_date: date
    event_type: str
    event_time: str | None = None
    notes: str | None = None
    sport: str | None = None


@dataclass(frozen=True)
class TaskScheduleRecord:
    task_id: str
    display_days: tuple[int, ...] | None = None
    display_time: str | None = None


@dataclass(frozen=True)
class SkipRecord:
    item_id: str
    item_type: str
    skip_days: tuple[int, ...] = ()


@dataclass(frozen=True)
class ProgramProgressRecord:
    sub_module: str
    module: str
    sport: str = "baseball"
    current_week: int = 1
    current_day: int = 1
    last_workout_date: date | None = None


@dataclass(frozen=True)
class MealRecord:
    id: str
    planned_date: date
    meal_type: str
    meal_name: str | None = None
    planned_time: str | None = None
    completed: bool = False


@dataclass
class SourceSnapshot:
    """Everything one aggregation pass read, one field per source category.

    A category whose reader failed stays empty and is named in failures.
    """

    templates: list[TemplateRecord] = field(default_factory=list)
    activity_logs: list[ActivityLogRecord] = field(default_factory=list)
    manual_events: list[ManualEventRecord] = field(default_factory=list)
    athlete_events: list[AthleteEventRecord] = field(default_factory=list)
    task_schedules: list[TaskScheduleRecord] = field(default_factory=list)
    skips: list[SkipRecord] = field(default_factory=list)
    program_progress: list[ProgramProgressRecord] = field(default_factory=list)
    meals: list[MealRecord] = field(default_factory=list)
    date_locks: list[DateLock] = field(default_factory=list)
    weekly_locks: list[WeeklyLock] = field(default_factory=list)
    week_overrides: list[WeekOverride] = field(default_factory=list)
    capabilities: CapabilitySet = field(default_factory=CapabilitySet)
    completion_markers: dict[str, set[date]] = field(default_factory=dict)
    recap_anchor: date | None = None
    failures: dict[str, str] = field(default_factory=dict)


def as_day_tuple(value: object) -> tuple[int, ...] | None:
    """Coerce a stored weekday list to a tuple, keeping None distinct from empty.

    Out-of-range and non-integer entries are dropped.
    """
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        return None
    days: list[int] = []
    for raw in value:
        try:
            day = int(raw)
        except (TypeError, ValueError):
            continue
        if 0 <= day <= 6:
            days.append(day)
    return tuple(days)
