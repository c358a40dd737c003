"""Canonical order keys.

An order key is the only identity used to match plan items across
recomputation and against saved ordering locks. Every normalizer and
every lock translation goes through to_order_key, so the prefix scheme
is defined exactly once here:

- gp:{taskId}         system, default-daily, module-gated tasks and program sessions
- ca:{templateId}     recurring custom activities and their logs
- ca:log-{logId}      logs without a template
- meal:{mealId}       planned meals (row id, not meal type)
- ae:{eventId}        athlete events (game days, rest days)
- man:{eventId}       manual calendar events
- other:{kind}-{id}   anything else
"""

from __future__ import annotations

from gameplan.calendar.types import PlanCategory

GAME_PLAN_PREFIX = "gp"
CUSTOM_ACTIVITY_PREFIX = "ca"
MEAL_PREFIX = "meal"
ATHLETE_EVENT_PREFIX = "ae"
MANUAL_PREFIX = "man"
OTHER_PREFIX = "other"

_CATEGORY_PREFIX: dict[PlanCategory, str] = {
    PlanCategory.SYSTEM_SCHEDULED_TASK: GAME_PLAN_PREFIX,
    PlanCategory.DEFAULT_DAILY_TASK: GAME_PLAN_PREFIX,
    PlanCategory.MODULE_GATED_TASK: GAME_PLAN_PREFIX,
    PlanCategory.PROGRAM_SESSION: GAME_PLAN_PREFIX,
    PlanCategory.RECURRING_ACTIVITY: CUSTOM_ACTIVITY_PREFIX,
    PlanCategory.ACTIVITY_LOG: CUSTOM_ACTIVITY_PREFIX,
    PlanCategory.MEAL: MEAL_PREFIX,
    PlanCategory.ATHLETE_EVENT: ATHLETE_EVENT_PREFIX,
    PlanCategory.MANUAL_EVENT: MANUAL_PREFIX,
}

KNOWN_PREFIXES = frozenset(
    {GAME_PLAN_PREFIX, CUSTOM_ACTIVITY_PREFIX, MEAL_PREFIX, ATHLETE_EVENT_PREFIX, MANUAL_PREFIX, OTHER_PREFIX}
)

# Id prefixes used by weekly lock schedules and skip records for custom activities
_TEMPLATE_ID_PREFIXES = ("template-", "custom-")


def _strip_template_prefix(source_id: str) -> str:
    for prefix in _TEMPLATE_ID_PREFIXES:
        if source_id.startswith(prefix):
            return source_id[len(prefix):]
    return source_id


def to_order_key(category: PlanCategory | str, source_id: str | None) -> str | None:
    """Build the canonical order key for an item.

    Args:
        category: Plan category (enum or its string value)
        source_id: Identifier of the underlying source record

    Returns:
        Category-prefixed order key, or None when there is no source id
    """
    if source_id is None or str(source_id).strip() == "":
        return None
    source_id = str(source_id)

    try:
        category = PlanCategory(category)
    except ValueError:
        return f"{OTHER_PREFIX}:{category}-{source_id}"

    prefix = _CATEGORY_PREFIX[category]
    if prefix == CUSTOM_ACTIVITY_PREFIX:
        source_id = _strip_template_prefix(source_id)
    return f"{prefix}:{source_id}"


def is_order_key(value: str) -> bool:
    """Whether a string already carries a known order-key prefix."""
    prefix, sep, rest = value.partition(":")
    return bool(sep) and bool(rest) and prefix in KNOWN_PREFIXES


def schedule_entry_order_key(task_id: str | None) -> str | None:
    """Translate a weekly-lock schedule task id into order-key form.

    Weekly lock schedules store the task ids the Game Plan shows:
    bare system task ids ("nutrition", "workout-hitting"), custom activities
    as "custom-{uuid}" or "template-{uuid}", meals as "meal-{id}", or a
    full order key.
    """
    if not task_id:
        return None
    if is_order_key(task_id):
        return task_id
    if task_id.startswith(_TEMPLATE_ID_PREFIXES):
        return to_order_key(PlanCategory.RECURRING_ACTIVITY, task_id)
    if task_id.startswith("meal-"):
        return to_order_key(PlanCategory.MEAL, task_id[len("meal-"):])
    return to_order_key(PlanCategory.SYSTEM_SCHEDULED_TASK, task_id)


# Item type names used by calendar events, mapped onto plan categories
_LEGACY_ITEM_TYPES: dict[str, PlanCategory] = {
    "custom_activity": PlanCategory.RECURRING_ACTIVITY,
    "game_plan": PlanCategory.SYSTEM_SCHEDULED_TASK,
    "program": PlanCategory.PROGRAM_SESSION,
    "manual": PlanCategory.MANUAL_EVENT,
}

SKIP_ITEM_TYPES = frozenset(_LEGACY_ITEM_TYPES) | frozenset(category.value for category in PlanCategory)


def is_skip_item_type(item_type: str) -> bool:
    """Whether a skip record's item type resolves to a plan category."""
    return item_type in SKIP_ITEM_TYPES


def skip_order_key(item_type: str, item_id: str) -> str | None:
    """Order key for a stored skip record.

    Skip records store the item's type and source id. The type is either a
    plan category value or one of the calendar event type names
    ("custom_activity", "game_plan", "program", "manual"). Unknown types
    have no key.
    """
    if not is_skip_item_type(item_type):
        return None
    if is_order_key(item_id):
        return item_id
    return to_order_key(_LEGACY_ITEM_TYPES.get(item_type, item_type), item_id)
