"""Daily Game Plan summary: one day's tasks, progress and the recap countdown."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date

from gameplan.calendar.types import PlanItem, PlanView


@dataclass(frozen=True)
class RecapStatus:
    """Position inside the recurring recap cycle (6 weeks by default)."""

    days_until_recap: int
    recap_progress: int  # percent of the cycle elapsed
    cycle_days: int


@dataclass(frozen=True)
class GamePlanSummary:
    day: date
    tasks: list[PlanItem]
    completed_count: int
    total_count: int
    recap: RecapStatus


def recap_countdown(anchor: date | None, today: date, cycle_days: int = 42) -> RecapStatus:
    """Days left until the next recap and percent of the cycle completed.

    Args:
        anchor: Start of the first cycle (streak start or first module purchase)
        today: Current local date
        cycle_days: Cycle length in days

    Returns:
        RecapStatus; a missing anchor counts as the start of a fresh cycle
    """
    if cycle_days <= 0:
        raise ValueError("cycle_days must be positive")
    if anchor is None:
        return RecapStatus(days_until_recap=cycle_days, recap_progress=0, cycle_days=cycle_days)
    days_since_start = max((today - anchor).days, 0)
    days_in_cycle = days_since_start % cycle_days
    return RecapStatus(
        days_until_recap=cycle_days - days_in_cycle,
        recap_progress=math.floor(days_in_cycle / cycle_days * 100 + 0.5),
        cycle_days=cycle_days,
    )


def build_game_plan(view: PlanView, day: date, anchor: date | None, cycle_days: int = 42) -> GamePlanSummary:
    plan = view.days.get(day)
    tasks = list(plan.items) if plan else []
    return GamePlanSummary(
        day=day,
        tasks=tasks,
        completed_count=plan.completed_count if plan else 0,
        total_count=plan.total_count if plan else 0,
        recap=recap_countdown(anchor, day, cycle_days),
    )
