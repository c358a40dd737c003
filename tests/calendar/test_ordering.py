"""Tests for per-day ordering resolution."""

from datetime import date, timedelta

from gameplan.calendar.ordering import LockIndex, positions_from_keys, positions_from_schedule, resolve_day_order
from gameplan.calendar.types import (
    DateLock,
    OrderingPolicy,
    PlanCategory,
    PlanItem,
    ScheduleEntry,
    WeeklyLock,
    WeekOverride,
    parse_schedule,
    week_start_for,
)

MONDAY = date(2024, 1, 15)
WEEK_START = date(2024, 1, 14)


def _item(item_id: str, start_time: str | None = None, order_key: str | None = None) -> PlanItem:
    return PlanItem(
        id=item_id,
        date=MONDAY,
        title=item_id,
        category=PlanCategory.SYSTEM_SCHEDULED_TASK,
        source_id=item_id,
        order_key=order_key if order_key is not None else f"gp:{item_id}",
        start_time=start_time,
    )


def _ids(items) -> list[str]:
    return [item.id for item in items]


class TestTimeFallback:
    """Tests for ordering with no locks."""

    def test_timed_first_untimed_keep_input_order(self):
        """Timed items come first; untimed keep their input order."""
        items = [_item("1"), _item("2", "09:00"), _item("3")]
        ordered, policy = resolve_day_order(MONDAY, items, LockIndex.build())
        assert _ids(ordered) == ["2", "1", "3"]
        assert policy == OrderingPolicy.TIME

    def test_sorted_by_time(self):
        """Without locks items sort by start time."""
        items = [_item("late", "18:00"), _item("early", "06:30"), _item("mid", "12:00")]
        ordered, _ = resolve_day_order(MONDAY, items)
        assert _ids(ordered) == ["early", "mid", "late"]


class TestDateLock:
    """Tests for date-specific locks."""

    def test_positions_then_unmapped_by_time(self):
        """Locked items follow their positions; the rest follow by time."""
        items = [_item("a", "08:00"), _item("b", "09:00"), _item("c", "07:00"), _item("d")]
        locks = LockIndex.build(date_locks=[DateLock(MONDAY, True, ("gp:b", "gp:a"))])

        ordered, policy = resolve_day_order(MONDAY, items, locks)

        assert _ids(ordered) == ["b", "a", "c", "d"]
        assert policy == OrderingPolicy.DATE_LOCK

    def test_unlocked_or_empty_lock_ignored(self):
        """Unlocked or empty date locks fall back to time order."""
        items = [_item("a", "08:00"), _item("b", "09:00")]
        for lock in (DateLock(MONDAY, False, ("gp:b", "gp:a")), DateLock(MONDAY, True, ())):
            ordered, policy = resolve_day_order(MONDAY, items, LockIndex.build(date_locks=[lock]))
            assert _ids(ordered) == ["a", "b"]
            assert policy == OrderingPolicy.TIME

    def test_stale_keys_ignored(self):
        """Lock keys with no matching item are ignored."""
        items = [_item("a", "08:00"), _item("b", "09:00")]
        locks = LockIndex.build(date_locks=[DateLock(MONDAY, True, ("gp:deleted", "gp:b"))])
        ordered, _ = resolve_day_order(MONDAY, items, locks)
        assert _ids(ordered) == ["b", "a"]

    def test_lock_for_other_date_ignored(self):
        """A date lock only applies to its own day."""
        items = [_item("a", "08:00"), _item("b", "09:00")]
        locks = LockIndex.build(date_locks=[DateLock(MONDAY + timedelta(days=7), True, ("gp:b", "gp:a"))])
        ordered, _ = resolve_day_order(MONDAY, items, locks)
        assert _ids(ordered) == ["a", "b"]

    def test_duplicate_keys_first_occurrence_wins(self):
        """A repeated key keeps its first position."""
        assert positions_from_keys(["gp:b", "gp:a", "gp:b"]) == {"gp:b": 0, "gp:a": 1}


class TestWeeklyLocks:
    """Tests for weekly locks and week overrides."""

    def test_weekly_lock_orders_by_entry_order(self):
        """Weekly lock entries are applied in their order field."""
        schedule = (ScheduleEntry("b", order=1), ScheduleEntry("a", order=0))
        locks = LockIndex.build(weekly_locks=[WeeklyLock(1, schedule)])

        ordered, policy = resolve_day_order(MONDAY, [_item("b", "06:00"), _item("a", "20:00"), _item("x")], locks)

        assert _ids(ordered) == ["a", "b", "x"]
        assert policy == OrderingPolicy.WEEKLY_LOCK

    def test_weekly_lock_applies_display_time(self):
        """Mapped items show the entry's display time."""
        schedule = (ScheduleEntry("a", order=0, display_time="05:45"),)
        locks = LockIndex.build(weekly_locks=[WeeklyLock(1, schedule)])
        ordered, _ = resolve_day_order(MONDAY, [_item("a")], locks)
        assert ordered[0].start_time == "05:45"

    def test_weekly_lock_for_other_weekday_ignored(self):
        """A weekly lock only applies on its weekday."""
        schedule = (ScheduleEntry("b", order=0), ScheduleEntry("a", order=1))
        locks = LockIndex.build(weekly_locks=[WeeklyLock(2, schedule)])
        ordered, policy = resolve_day_order(MONDAY, [_item("a", "08:00"), _item("b", "09:00")], locks)
        assert _ids(ordered) == ["a", "b"]
        assert policy == OrderingPolicy.TIME

    def test_schedule_task_ids_translated(self):
        """Schedule task ids are translated into order keys."""
        schedule = (ScheduleEntry("custom-t1", order=0), ScheduleEntry("meal-m1", order=1), ScheduleEntry("nutrition", order=2))
        assert positions_from_schedule(schedule) == {"ca:t1": 0, "meal:m1": 1, "gp:nutrition": 2}

    def test_week_override_beats_weekly_lock(self):
        """A week override supersedes the weekly lock for its week."""
        weekly = WeeklyLock(1, (ScheduleEntry("a", order=0), ScheduleEntry("b", order=1)))
        override = WeekOverride(1, WEEK_START, (ScheduleEntry("b", order=0), ScheduleEntry("a", order=1)))
        locks = LockIndex.build(weekly_locks=[weekly], week_overrides=[override])

        ordered, policy = resolve_day_order(MONDAY, [_item("a"), _item("b")], locks)
        assert _ids(ordered) == ["b", "a"]
        assert policy == OrderingPolicy.WEEK_OVERRIDE

        next_monday = MONDAY + timedelta(days=7)
        ordered, policy = resolve_day_order(next_monday, [_item("a"), _item("b")], locks)
        assert _ids(ordered) == ["a", "b"]
        assert policy == OrderingPolicy.WEEKLY_LOCK

    def test_week_start_follows_configuration(self):
        """The override's week is computed from the configured week start."""
        assert week_start_for(MONDAY, 0) == WEEK_START
        assert week_start_for(MONDAY, 1) == MONDAY
        assert week_start_for(WEEK_START, 1) == date(2024, 1, 8)

    def test_date_lock_beats_weekly_lock(self):
        """Date lock [B, A] wins over a weekly lock placing A before B."""
        weekly = WeeklyLock(1, (ScheduleEntry("a", order=0), ScheduleEntry("b", order=1)))
        date_lock = DateLock(MONDAY, True, ("gp:b", "gp:a"))

        ordered, policy = resolve_day_order(
            MONDAY, [_item("a"), _item("b")], LockIndex.build(date_locks=[date_lock], weekly_locks=[weekly])
        )
        assert _ids(ordered) == ["b", "a"]
        assert policy == OrderingPolicy.DATE_LOCK

        ordered, policy = resolve_day_order(MONDAY, [_item("a"), _item("b")], LockIndex.build(weekly_locks=[weekly]))
        assert _ids(ordered) == ["a", "b"]


class TestScheduleParsing:
    def test_malformed_entries_dropped(self):
        """Entries without a task id are dropped and a bad order becomes zero."""
        raw = [
            {"taskId": "nutrition", "order": 0, "displayTime": "07:00"},
            {"order": 1},
            "garbage",
            {"task_id": "mindfuel", "order": "x"},
        ]
        schedule = parse_schedule(raw)
        assert [entry.task_id for entry in schedule] == ["nutrition", "mindfuel"]
        assert schedule[0].display_time == "07:00"
        assert schedule[1].order == 0

    def test_non_list_schedule(self):
        """A schedule that is not a list parses as empty."""
        assert parse_schedule(None) == ()
        assert parse_schedule({"taskId": "a"}) == ()
