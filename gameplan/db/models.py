from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""


class UserModule(Base):
    """Purchased training modules (capabilities) per user.

    A module string such as "baseball_hitting" grants the "hitting" capability.
    The earliest created_at is the fallback anchor for the recap countdown.
    """

    __tablename__ = "user_modules"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    module: Mapped[str] = mapped_column(String, nullable=False)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("user_id", "module", name="uq_user_modules_user_module"),)


class CustomActivityTemplate(Base):
    """User-defined recurring activity (drills, routines, practices).

    recurring_days wins over display_days when non-empty. Both use
    weekday numbers 0 (Sunday) - 6 (Saturday).
    """

    __tablename__ = "custom_activity_templates"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    display_nickname: Mapped[str | None] = mapped_column(String, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    activity_type: Mapped[str] = mapped_column(String, nullable=False, default="custom")
    color: Mapped[str | None] = mapped_column(String, nullable=True)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)
    recurring_days: Mapped[list | None] = mapped_column(JSON, nullable=True)
    display_days: Mapped[list | None] = mapped_column(JSON, nullable=True)
    display_time: Mapped[str | None] = mapped_column(String, nullable=True)  # HH:MM
    display_on_game_plan: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)


class CustomActivityLog(Base):
    """A concrete instance of a custom activity on one day."""

    __tablename__ = "custom_activity_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    template_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (Index("idx_custom_activity_logs_user_date", "user_id", "entry_date"),)


class CalendarEvent(Base):
    """Manually created calendar event."""

    __tablename__ = "calendar_events"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False, default="general")
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String, nullable=True)
    end_time: Mapped[str | None] = mapped_column(String, nullable=True)
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    color: Mapped[str | None] = mapped_column(String, nullable=True)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (Index("idx_calendar_events_user_date", "user_id", "event_date"),)


class AthleteEvent(Base):
    """Game days, rest days and other athlete-level events."""

    __tablename__ = "athlete_events"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)  # game, rest, practice, ...
    event_time: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)


class GamePlanTaskSchedule(Base):
    """Explicit weekly display-day configuration for one system task."""

    __tablename__ = "game_plan_task_schedule"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    task_id: Mapped[str] = mapped_column(String, nullable=False)
    display_days: Mapped[list | None] = mapped_column(JSON, nullable=True)
    display_time: Mapped[str | None] = mapped_column(String, nullable=True)
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("user_id", "task_id", name="uq_task_schedule_user_task"),)


class CalendarSkippedItem(Base):
    """Per-weekday "skip this occurrence" settings for one plan item."""

    __tablename__ = "calendar_skipped_items"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String, nullable=False)
    item_type: Mapped[str] = mapped_column(String, nullable=False)
    skip_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("user_id", "item_id", "item_type", name="uq_skipped_items_user_item"),)


class SubModuleProgress(Base):
    """Progress through a structured multi-week workout program."""

    __tablename__ = "sub_module_progress"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    sport: Mapped[str] = mapped_column(String, nullable=False, default="baseball")
    module: Mapped[str] = mapped_column(String, nullable=False)  # hitting, pitching
    sub_module: Mapped[str] = mapped_column(String, nullable=False)  # iron-bambino, heat-factory
    current_week: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_workout_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class MealPlan(Base):
    """One planned meal on one day."""

    __tablename__ = "vault_meal_plans"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    planned_date: Mapped[date] = mapped_column(Date, nullable=False)
    meal_type: Mapped[str] = mapped_column(String, nullable=False)  # breakfast, lunch, dinner, snack
    meal_name: Mapped[str | None] = mapped_column(String, nullable=True)
    planned_time: Mapped[str | None] = mapped_column(String, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class VaultNutritionLog(Base):
    """Daily nutrition check-in; marks the nutrition task complete."""

    __tablename__ = "vault_nutrition_logs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)


class Video(Base):
    """Submitted video for analysis; marks the video task complete on its day."""

    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    sport: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)


class VaultStreak(Base):
    """Vault journaling streak; created_at anchors the recap cycle."""

    __tablename__ = "vault_streaks"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)


class CalendarDayOrder(Base):
    """Date-specific ordering lock for one calendar day."""

    __tablename__ = "calendar_day_orders"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_keys: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("user_id", "event_date", name="uq_day_orders_user_date"),)


class GamePlanLockedDay(Base):
    """Weekly-recurring ordering lock for one weekday.

    schedule is a JSON list of {taskId, order, displayTime, reminderMinutes, reminderEnabled}.
    """

    __tablename__ = "game_plan_locked_days"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    schedule: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    locked_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (UniqueConstraint("user_id", "day_of_week", name="uq_locked_days_user_dow"),)


class GamePlanWeekOverride(Base):
    """Weekly lock schedule valid for a single concrete week."""

    __tablename__ = "game_plan_week_overrides"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    override_schedule: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_now)

    __table_args__ = (
        UniqueConstraint("user_id", "day_of_week", "week_start", name="uq_week_overrides_user_dow_week"),
    )
