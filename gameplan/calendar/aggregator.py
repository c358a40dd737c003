"""Day aggregator.

Builds a PlanView from one SourceSnapshot:

1. An empty bucket for every day in [start, end].
2. Every source category expanded and appended to its day.
3. Items whose module gate the user lacks are dropped.
4. Template projections suppressed by a same-day log are dropped.
5. Each day ordered by the ordering resolver.

Pure and deterministic: identical snapshots give identical views.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from loguru import logger

from gameplan.calendar.capabilities import CapabilitySet
from gameplan.calendar.normalizer import (
    NormalizeContext,
    expand_program_sessions,
    expand_recurring_templates,
    expand_system_tasks,
    normalize_activity_logs,
    normalize_athlete_events,
    normalize_manual_events,
    normalize_meals,
)
from gameplan.calendar.ordering import LockIndex, resolve_day_order
from gameplan.calendar.records import SourceSnapshot
from gameplan.calendar.skips import SkipRegistry
from gameplan.calendar.types import DayPlan, PlanCategory, PlanItem, PlanView, day_of_week, days_in_range

# Categories whose instances count toward a day's completion progress
COUNTABLE_CATEGORIES = frozenset(
    {
        PlanCategory.SYSTEM_SCHEDULED_TASK,
        PlanCategory.DEFAULT_DAILY_TASK,
        PlanCategory.MODULE_GATED_TASK,
        PlanCategory.PROGRAM_SESSION,
        PlanCategory.RECURRING_ACTIVITY,
        PlanCategory.ACTIVITY_LOG,
        PlanCategory.MEAL,
    }
)


class PlanRangeError(ValueError):
    """Raised when an aggregation range is reversed or too long."""

    def __init__(self, start: date, end: date, reason: str):
        self.start = start
        self.end = end
        super().__init__(f"Invalid plan range {start}..{end}: {reason}")


def validate_range(start: date, end: date, max_days: int | None = None) -> None:
    if start > end:
        raise PlanRangeError(start, end, "start is after end")
    if max_days is not None and (end - start).days + 1 > max_days:
        raise PlanRangeError(start, end, f"range exceeds {max_days} days")


def apply_module_gates(items: Iterable[PlanItem], capabilities: CapabilitySet) -> list[PlanItem]:
    return [item for item in items if capabilities.has(item.module_gate)]


def enforce_suppression(items: list[PlanItem]) -> list[PlanItem]:
    """Drop template projections whose order key a same-day log already holds."""
    logged_keys = {item.order_key for item in items if item.category == PlanCategory.ACTIVITY_LOG}
    if not logged_keys:
        return items
    return [
        item
        for item in items
        if not (item.category == PlanCategory.RECURRING_ACTIVITY and item.order_key in logged_keys)
    ]


def count_progress(items: Iterable[PlanItem]) -> tuple[int, int]:
    """(completed, total) over the countable items of a day."""
    countable = [item for item in items if item.category in COUNTABLE_CATEGORIES]
    return sum(1 for item in countable if item.completed), len(countable)


def aggregate_plan(
    snapshot: SourceSnapshot,
    start: date,
    end: date,
    *,
    today: date,
    sport: str = "baseball",
    week_starts_on: int = 0,
    generation: int = 0,
) -> PlanView:
    """Aggregate one snapshot into ordered day plans.

    Args:
        snapshot: Records read for the pass
        start: First day of the range (inclusive)
        end: Last day of the range (inclusive)
        today: Local date used for today-specific rendering
        sport: Active sport (baseball or softball)
        week_starts_on: Weekday that starts a week for week overrides
        generation: Pass generation stamped on the view

    Returns:
        PlanView with one DayPlan per day in range

    Raises:
        PlanRangeError: If start is after end
    """
    validate_range(start, end)
    days = days_in_range(start, end)
    buckets: dict[date, list[PlanItem]] = {day: [] for day in days}

    ctx = NormalizeContext(
        days=days,
        today=today,
        capabilities=snapshot.capabilities,
        skips=SkipRegistry(snapshot.skips),
        completion_markers=snapshot.completion_markers,
        sport=sport,
    )

    expanded: list[PlanItem] = []
    expanded.extend(normalize_athlete_events(snapshot.athlete_events))
    expanded.extend(expand_recurring_templates(snapshot.templates, snapshot.activity_logs, ctx))
    expanded.extend(normalize_activity_logs(snapshot.activity_logs, snapshot.templates))
    expanded.extend(normalize_manual_events(snapshot.manual_events))
    expanded.extend(expand_system_tasks(snapshot.task_schedules, ctx))
    expanded.extend(expand_program_sessions(snapshot.program_progress, snapshot.task_schedules, ctx))
    expanded.extend(normalize_meals(snapshot.meals, ctx))

    dropped_out_of_range = 0
    for item in apply_module_gates(expanded, snapshot.capabilities):
        bucket = buckets.get(item.date)
        if bucket is None:
            dropped_out_of_range += 1
            continue
        bucket.append(item)
    if dropped_out_of_range:
        logger.debug(f"[PLAN] Ignored {dropped_out_of_range} items outside {start}..{end}")

    locks = LockIndex.build(
        snapshot.date_locks,
        snapshot.weekly_locks,
        snapshot.week_overrides,
        week_starts_on=week_starts_on,
    )

    day_plans: dict[date, DayPlan] = {}
    for day in days:
        ordered, policy = resolve_day_order(day, enforce_suppression(buckets[day]), locks)
        completed, total = count_progress(ordered)
        day_plans[day] = DayPlan(
            date=day,
            day_of_week=day_of_week(day),
            items=ordered,
            policy=policy,
            completed_count=completed,
            total_count=total,
        )

    return PlanView(
        start=start,
        end=end,
        days=day_plans,
        generation=generation,
        failures=dict(snapshot.failures),
        recap_anchor=snapshot.recap_anchor,
    )
