"""Game Plan - daily plan aggregation for youth athlete training.

This package provides:
- Source readers for every plan item category (SQLAlchemy-backed)
- Normalization of raw records into PlanItems with stable order keys
- Per-day aggregation with module gates, skips and log suppression
- Ordering resolution honoring date locks, week overrides and weekly locks
- An aggregation service with mutations, refresh and change subscriptions
"""

from gameplan.calendar.aggregator import aggregate_plan
from gameplan.calendar.capabilities import CapabilitySet
from gameplan.calendar.order_keys import schedule_entry_order_key, to_order_key
from gameplan.calendar.ordering import resolve_day_order
from gameplan.calendar.service import DailyPlanService
from gameplan.calendar.types import DayPlan, PlanCategory, PlanItem, PlanView

__all__ = [
    "CapabilitySet",
    "DailyPlanService",
    "DayPlan",
    "PlanCategory",
    "PlanItem",
    "PlanView",
    "aggregate_plan",
    "resolve_day_order",
    "schedule_entry_order_key",
    "to_order_key",
]
