"""Item normalizer.

Converts raw source records into PlanItems. Each function handles one
source category and returns items for every qualifying day of the pass.
Module gates are carried on the items and enforced by the aggregator.

Rules that span categories:
- A recurring template projection never coexists with its own log on the
  same day: the projection is not emitted when a log exists.
- Skips hide an item on a weekday only when nothing is logged or
  completed for that day.
- Manual and athlete events are always included.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from gameplan.calendar.capabilities import CapabilitySet
from gameplan.calendar.catalog import (
    DEFAULT_DAILY_TASKS,
    MODULE_GATED_TASKS,
    PROGRAMS_BY_SUB_MODULE,
    SystemTask,
)
from gameplan.calendar.order_keys import to_order_key
from gameplan.calendar.records import (
    ActivityLogRecord,
    AthleteEventRecord,
    ManualEventRecord,
    MealRecord,
    ProgramProgressRecord,
    TaskScheduleRecord,
    TemplateRecord,
)
from gameplan.calendar.skips import SkipRegistry
from gameplan.calendar.types import PlanCategory, PlanItem, day_of_week, normalize_time

EVENT_COLORS: dict[PlanCategory, str] = {
    PlanCategory.ATHLETE_EVENT: "#ef4444",
    PlanCategory.SYSTEM_SCHEDULED_TASK: "#3b82f6",
    PlanCategory.DEFAULT_DAILY_TASK: "#3b82f6",
    PlanCategory.MODULE_GATED_TASK: "#3b82f6",
    PlanCategory.RECURRING_ACTIVITY: "#8b5cf6",
    PlanCategory.ACTIVITY_LOG: "#8b5cf6",
    PlanCategory.PROGRAM_SESSION: "#f59e0b",
    PlanCategory.MEAL: "#22c55e",
    PlanCategory.MANUAL_EVENT: "#6366f1",
}
FALLBACK_COLOR = "#6b7280"

PROGRAM_PLACEHOLDER = "gamePlan.program.scheduledWorkout"


@dataclass
class NormalizeContext:
    """Per-pass inputs shared by every normalizer."""

    days: list[date]
    today: date
    capabilities: CapabilitySet = field(default_factory=CapabilitySet)
    skips: SkipRegistry = field(default_factory=SkipRegistry)
    completion_markers: dict[str, set[date]] = field(default_factory=dict)
    sport: str = "baseball"

    def is_marked(self, marker: str | None, day: date) -> bool:
        if marker is None:
            return False
        return day in self.completion_markers.get(marker, ())


def _color(category: PlanCategory, explicit: str | None = None) -> str:
    return explicit or EVENT_COLORS.get(category, FALLBACK_COLOR)


def _schedule_days(schedule: TaskScheduleRecord | None) -> tuple[int, ...] | None:
    """Explicit display days, or None when there is no usable schedule row.

    A row whose display_days is null does not count as an explicit schedule.
    """
    if schedule is None or schedule.display_days is None:
        return None
    return schedule.display_days


def template_days(template: TemplateRecord) -> tuple[int, ...]:
    """Weekdays a template recurs on: recurring_days if non-empty, else display_days.

    Empty and null both mean "no schedule"; no default is inherited.
    """
    if template.recurring_days:
        return template.recurring_days
    return template.display_days or ()


def expand_recurring_templates(
    templates: Iterable[TemplateRecord],
    logs: Iterable[ActivityLogRecord],
    ctx: NormalizeContext,
) -> list[PlanItem]:
    """Project recurring templates onto every matching day without a log."""
    logged = {(log.template_id, log.entry_date) for log in logs if log.template_id}
    items: list[PlanItem] = []
    for template in templates:
        if not template.display_on_game_plan:
            continue
        recurring = template_days(template)
        if not recurring:
            continue
        order_key = to_order_key(PlanCategory.RECURRING_ACTIVITY, template.id)
        for day in ctx.days:
            weekday = day_of_week(day)
            if weekday not in recurring:
                continue
            if (template.id, day) in logged:
                continue
            if ctx.skips.should_hide(order_key, weekday, has_log=False):
                continue
            items.append(
                PlanItem(
                    id=f"template-{template.id}-{day.isoformat()}",
                    date=day,
                    title=template.display_title,
                    description=template.description,
                    start_time=normalize_time(template.display_time),
                    category=PlanCategory.RECURRING_ACTIVITY,
                    source_id=template.id,
                    order_key=order_key,
                    completed=False,
                    editable=False,
                    deletable=False,
                    color=_color(PlanCategory.RECURRING_ACTIVITY, template.color),
                    sport=template.sport,
                    activity_type=template.activity_type,
                )
            )
    return items


def normalize_activity_logs(
    logs: Iterable[ActivityLogRecord],
    templates: Iterable[TemplateRecord] = (),
) -> list[PlanItem]:
    """One item per log. Logs are never hidden by template schedules or skips."""
    templates_by_id = {template.id: template for template in templates}
    items: list[PlanItem] = []
    for log in logs:
        template = log.template or (templates_by_id.get(log.template_id) if log.template_id else None)
        source_id = log.template_id or f"log-{log.id}"
        items.append(
            PlanItem(
                id=log.id,
                date=log.entry_date,
                title=template.display_title if template else "Custom Activity",
                description=log.notes or (template.description if template else None),
                start_time=normalize_time(log.start_time),
                category=PlanCategory.ACTIVITY_LOG,
                source_id=source_id,
                order_key=to_order_key(PlanCategory.ACTIVITY_LOG, source_id),
                completed=log.completed,
                editable=True,
                deletable=True,
                color=_color(PlanCategory.ACTIVITY_LOG, template.color if template else None),
                sport=template.sport if template else None,
                activity_type=template.activity_type if template else "custom",
            )
        )
    return items


def _system_task_item(
    task: SystemTask,
    day: date,
    category: PlanCategory,
    start_time: str | None,
    completed: bool,
    sport: str,
) -> PlanItem:
    return PlanItem(
        id=f"{task.task_id}-{day.isoformat()}",
        date=day,
        title=task.title,
        description=task.description,
        start_time=start_time,
        category=category,
        source_id=task.task_id,
        order_key=to_order_key(category, task.task_id),
        completed=completed,
        module_gate=task.module_gate,
        color=_color(category),
        link=task.link.format(sport=sport),
        sport=sport,
    )


def expand_system_tasks(
    schedules: Iterable[TaskScheduleRecord],
    ctx: NormalizeContext,
    tasks: Iterable[SystemTask] = DEFAULT_DAILY_TASKS + MODULE_GATED_TASKS,
) -> list[PlanItem]:
    """Expand built-in tasks onto their display days.

    A task with an explicit schedule row shows on that row's days at its
    display time. Without one, default-daily tasks show every day and
    module-gated tasks show on their recommended days.
    """
    schedule_by_task = {schedule.task_id: schedule for schedule in schedules}
    items: list[PlanItem] = []
    for task in tasks:
        schedule = schedule_by_task.get(task.task_id)
        explicit_days = _schedule_days(schedule)
        if explicit_days is not None:
            days = explicit_days
            category = PlanCategory.SYSTEM_SCHEDULED_TASK
            start_time = normalize_time(schedule.display_time)
        else:
            days = task.default_days()
            category = task.category
            start_time = None

        order_key = to_order_key(category, task.task_id)
        for day in ctx.days:
            weekday = day_of_week(day)
            if weekday not in days:
                continue
            completed = ctx.is_marked(task.completion_marker, day)
            if ctx.skips.should_hide(order_key, weekday, has_log=completed):
                continue
            items.append(_system_task_item(task, day, category, start_time, completed, ctx.sport))
    return items


def expand_program_sessions(
    progress: Iterable[ProgramProgressRecord],
    schedules: Iterable[TaskScheduleRecord],
    ctx: NormalizeContext,
) -> list[PlanItem]:
    """Expand program sessions onto their weekly training days.

    Today's session shows the concrete "Week N · Day M" label; other days
    show a placeholder. The order key is the same in both renderings.
    """
    schedule_by_task = {schedule.task_id: schedule for schedule in schedules}
    items: list[PlanItem] = []
    seen: set[str] = set()
    for record in progress:
        program = PROGRAMS_BY_SUB_MODULE.get(record.sub_module)
        if program is None or program.task_id in seen:
            continue
        if record.sport and record.sport != ctx.sport:
            continue
        seen.add(program.task_id)

        schedule = schedule_by_task.get(program.task_id)
        explicit_days = _schedule_days(schedule)
        days = explicit_days if explicit_days is not None else program.recommended_days
        start_time = normalize_time(schedule.display_time) if schedule else None
        order_key = to_order_key(PlanCategory.PROGRAM_SESSION, program.task_id)

        for day in ctx.days:
            weekday = day_of_week(day)
            if weekday not in days:
                continue
            completed = record.last_workout_date == day
            if ctx.skips.should_hide(order_key, weekday, has_log=completed):
                continue
            if day == ctx.today:
                detail = f"Week {record.current_week} · Day {record.current_day}"
            else:
                detail = PROGRAM_PLACEHOLDER
            items.append(
                PlanItem(
                    id=f"{program.task_id}-{day.isoformat()}",
                    date=day,
                    title=program.title,
                    description=detail,
                    start_time=start_time,
                    category=PlanCategory.PROGRAM_SESSION,
                    source_id=program.task_id,
                    order_key=order_key,
                    completed=completed,
                    module_gate=program.module_gate,
                    color=_color(PlanCategory.PROGRAM_SESSION),
                    link=program.link.format(sport=ctx.sport),
                    sport=record.sport,
                )
            )
    return items


def normalize_meals(meals: Iterable[MealRecord], ctx: NormalizeContext) -> list[PlanItem]:
    """One item per planned meal row, keyed by the row id."""
    items: list[PlanItem] = []
    for meal in meals:
        order_key = to_order_key(PlanCategory.MEAL, meal.id)
        if ctx.skips.should_hide(order_key, day_of_week(meal.planned_date), has_log=meal.completed):
            continue
        items.append(
            PlanItem(
                id=meal.id,
                date=meal.planned_date,
                title=meal.meal_name or meal.meal_type.capitalize(),
                description=meal.meal_type,
                start_time=normalize_time(meal.planned_time),
                category=PlanCategory.MEAL,
                source_id=meal.id,
                order_key=order_key,
                completed=meal.completed,
                color=_color(PlanCategory.MEAL),
                link="/nutrition-hub",
            )
        )
    return items


def normalize_manual_events(events: Iterable[ManualEventRecord]) -> list[PlanItem]:
    return [
        PlanItem(
            id=event.id,
            date=event.event_date,
            title=event.title,
            description=event.description,
            start_time=normalize_time(event.start_time),
            end_time=normalize_time(event.end_time),
            all_day=event.all_day,
            category=PlanCategory.MANUAL_EVENT,
            source_id=event.id,
            order_key=to_order_key(PlanCategory.MANUAL_EVENT, event.id),
            editable=True,
            deletable=True,
            color=_color(PlanCategory.MANUAL_EVENT, event.color),
            sport=event.sport,
            activity_type=event.event_type,
        )
        for event in events
    ]


def normalize_athlete_events(events: Iterable[AthleteEventRecord]) -> list[PlanItem]:
    return [
        PlanItem(
            id=event.id,
            date=event.event_date,
            title=event.event_type.capitalize(),
            description=event.notes,
            start_time=normalize_time(event.event_time),
            category=PlanCategory.ATHLETE_EVENT,
            source_id=event.id,
            order_key=to_order_key(PlanCategory.ATHLETE_EVENT, event.id),
            editable=True,
            deletable=True,
            color=_color(PlanCategory.ATHLETE_EVENT),
            sport=event.sport,
            activity_type=event.event_type,
        )
        for event in events
    ]
