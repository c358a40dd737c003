"""Pydantic models for calendar mutations and API responses."""

from __future__ import annotations

import re
from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator

from gameplan.calendar.order_keys import SKIP_ITEM_TYPES, is_skip_item_type
from gameplan.calendar.types import DayPlan, PlanItem, ScheduleEntry

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def _validate_time(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not _TIME_RE.match(value):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    return value[:5]


class CalendarEventCreate(BaseModel):
    """Payload for a new manual calendar event."""

    event_date: date_type
    title: str = Field(min_length=1, max_length=200)
    event_type: str = Field(default="general")
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    all_day: bool = False
    color: str | None = None
    reminder_enabled: bool = False
    reminder_minutes: int | None = Field(default=None, ge=0)
    sport: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_time(value)


class CalendarEventUpdate(BaseModel):
    """Partial update for a manual calendar event. Unset fields are left unchanged."""

    event_date: date_type | None = None
    title: str | None = Field(default=None, min_length=1, max_length=200)
    event_type: str | None = None
    description: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    all_day: bool | None = None
    color: str | None = None
    reminder_enabled: bool | None = None
    reminder_minutes: int | None = Field(default=None, ge=0)
    sport: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_time(value)


class ActivityLogCreate(BaseModel):
    """Payload for logging a custom activity on one day."""

    entry_date: date_type
    template_id: str | None = None
    start_time: str | None = None
    notes: str | None = None
    completed: bool = False

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_time(value)


class ActivityLogUpdate(BaseModel):
    entry_date: date_type | None = None
    start_time: str | None = None
    notes: str | None = None
    completed: bool | None = None

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_time(value)


class DayOrderRequest(BaseModel):
    """Date-specific lock to save for one day."""

    order_keys: list[str]
    locked: bool = True


class PlanItemResponse(BaseModel):
    id: str
    date: date_type
    title: str
    description: str | None
    start_time: str | None
    end_time: str | None
    all_day: bool
    category: str
    source_id: str
    order_key: str | None
    completed: bool
    editable: bool
    deletable: bool
    module_gate: str | None
    color: str | None
    link: str | None
    sport: str | None

    @classmethod
    def from_item(cls, item: PlanItem) -> PlanItemResponse:
        return cls(
            id=item.id,
            date=item.date,
            title=item.title,
            description=item.description,
            start_time=item.start_time,
            end_time=item.end_time,
            all_day=item.all_day,
            category=str(item.category),
            source_id=item.source_id,
            order_key=item.order_key,
            completed=item.completed,
            editable=item.editable,
            deletable=item.deletable,
            module_gate=item.module_gate,
            color=item.color,
            link=item.link,
            sport=item.sport,
        )


class DayPlanResponse(BaseModel):
    date: date_type
    day_of_week: int
    policy: str
    completed_count: int
    total_count: int
    items: list[PlanItemResponse]

    @classmethod
    def from_day(cls, day: DayPlan) -> DayPlanResponse:
        return cls(
            date=day.date,
            day_of_week=day.day_of_week,
            policy=str(day.policy),
            completed_count=day.completed_count,
            total_count=day.total_count,
            items=[PlanItemResponse.from_item(item) for item in day.items],
        )


class PlanRangeResponse(BaseModel):
    start: date_type
    end: date_type
    days: list[DayPlanResponse]
    failed_sources: list[str] = Field(default_factory=list)


class GamePlanResponse(BaseModel):
    day: date_type
    tasks: list[PlanItemResponse]
    completed_count: int
    total_count: int
    days_until_recap: int
    recap_progress: int


class MutationResponse(BaseModel):
    success: bool


class ScheduleEntryPayload(BaseModel):
    """One slot of a weekly lock schedule as sent by clients."""

    task_id: str = Field(min_length=1)
    order: int = Field(ge=0)
    display_time: str | None = None
    reminder_minutes: int | None = Field(default=None, ge=0)
    reminder_enabled: bool = False

    @field_validator("display_time")
    @classmethod
    def validate_time(cls, value: str | None) -> str | None:
        return _validate_time(value)

    def to_entry(self) -> ScheduleEntry:
        return ScheduleEntry(
            task_id=self.task_id,
            order=self.order,
            display_time=self.display_time,
            reminder_minutes=self.reminder_minutes,
            reminder_enabled=self.reminder_enabled,
        )


class LockDaysRequest(BaseModel):
    """Weekly lock for a set of weekdays (0 = Sunday .. 6 = Saturday)."""

    days: list[int] = Field(min_length=1)
    schedule: list[ScheduleEntryPayload] = Field(default_factory=list)

    @field_validator("days")
    @classmethod
    def validate_days(cls, value: list[int]) -> list[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"day_of_week must be in 0..6, got {day}")
        return value


class SkipDaysRequest(BaseModel):
    item_id: str = Field(min_length=1)
    item_type: str = Field(min_length=1)
    skip_days: list[int] = Field(default_factory=list)

    @field_validator("item_type")
    @classmethod
    def validate_item_type(cls, value: str) -> str:
        if not is_skip_item_type(value):
            raise ValueError(f"item_type must be one of {sorted(SKIP_ITEM_TYPES)}, got {value!r}")
        return value

    @field_validator("skip_days")
    @classmethod
    def validate_days(cls, value: list[int]) -> list[int]:
        for day in value:
            if not 0 <= day <= 6:
                raise ValueError(f"skip day must be in 0..6, got {day}")
        return value
