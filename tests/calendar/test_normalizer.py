"""Tests for converting raw source records into plan items."""

from datetime import date

from gameplan.calendar.normalizer import (
    PROGRAM_PLACEHOLDER,
    NormalizeContext,
    expand_program_sessions,
    expand_recurring_templates,
    expand_system_tasks,
    normalize_activity_logs,
    normalize_athlete_events,
    normalize_manual_events,
    normalize_meals,
    template_days,
)
from gameplan.calendar.records import (
    ActivityLogRecord,
    AthleteEventRecord,
    ManualEventRecord,
    MealRecord,
    ProgramProgressRecord,
    SkipRecord,
    TaskScheduleRecord,
    TemplateRecord,
)
from gameplan.calendar.skips import SkipRegistry
from gameplan.calendar.types import PlanCategory, days_in_range

SUNDAY = date(2024, 1, 14)
MONDAY = date(2024, 1, 15)
WEDNESDAY = date(2024, 1, 17)
SATURDAY = date(2024, 1, 20)


def _ctx(days=None, skips=(), markers=None, today=MONDAY, sport="baseball") -> NormalizeContext:
    return NormalizeContext(
        days=days or days_in_range(SUNDAY, SATURDAY),
        today=today,
        skips=SkipRegistry(skips),
        completion_markers=markers or {},
        sport=sport,
    )


class TestRecurringTemplates:
    """Tests for projecting recurring templates onto days."""

    def test_projects_onto_recurring_weekdays(self):
        """A template appears on each of its recurring weekdays."""
        template = TemplateRecord(id="t1", title="Sprints", recurring_days=(1, 3), display_time="06:15:00")
        items = expand_recurring_templates([template], [], _ctx())

        assert [item.date for item in items] == [MONDAY, WEDNESDAY]
        first = items[0]
        assert first.id == "template-t1-2024-01-15"
        assert first.order_key == "ca:t1"
        assert first.category == PlanCategory.RECURRING_ACTIVITY
        assert first.start_time == "06:15"
        assert first.editable is False
        assert first.completed is False

    def test_display_days_used_when_recurring_days_empty(self):
        """Display days apply when recurring days are empty."""
        template = TemplateRecord(id="t1", title="Sprints", recurring_days=(), display_days=(0,))
        assert template_days(template) == (0,)
        items = expand_recurring_templates([template], [], _ctx())
        assert [item.date for item in items] == [SUNDAY]

    def test_no_schedule_means_no_projection(self):
        """A template with no days is never projected."""
        template = TemplateRecord(id="t1", title="Sprints")
        assert expand_recurring_templates([template], [], _ctx()) == []

    def test_hidden_from_game_plan(self):
        """Templates not shown on the game plan are not projected."""
        template = TemplateRecord(id="t1", title="Sprints", recurring_days=(1,), display_on_game_plan=False)
        assert expand_recurring_templates([template], [], _ctx()) == []

    def test_nickname_used_as_title(self):
        """The nickname replaces the title when set."""
        template = TemplateRecord(id="t1", title="Sprints", display_nickname="Speed", recurring_days=(1,))
        items = expand_recurring_templates([template], [], _ctx())
        assert items[0].title == "Speed"

    def test_log_on_day_suppresses_projection(self):
        """A log on the day hides the projection."""
        template = TemplateRecord(id="t1", title="Sprints", recurring_days=(1, 3))
        log = ActivityLogRecord(id="L1", entry_date=MONDAY, template_id="t1")
        items = expand_recurring_templates([template], [log], _ctx())
        assert [item.date for item in items] == [WEDNESDAY]

    def test_skipped_weekday_hidden(self):
        """A skipped weekday hides the projection."""
        template = TemplateRecord(id="t1", title="Sprints", recurring_days=(1, 3))
        skip = SkipRecord(item_id="t1", item_type="custom_activity", skip_days=(1,))
        items = expand_recurring_templates([template], [], _ctx(skips=[skip]))
        assert [item.date for item in items] == [WEDNESDAY]


class TestActivityLogs:
    """Tests for activity log items."""

    def test_log_with_template(self):
        """A log of a template shares the template's key."""
        template = TemplateRecord(id="t1", title="Sprints", color="#000000")
        log = ActivityLogRecord(id="L1", entry_date=MONDAY, template_id="t1", completed=True, start_time="17:00")
        (item,) = normalize_activity_logs([log], [template])

        assert item.id == "L1"
        assert item.title == "Sprints"
        assert item.order_key == "ca:t1"
        assert item.source_id == "t1"
        assert item.completed is True
        assert item.editable is True
        assert item.deletable is True
        assert item.color == "#000000"

    def test_log_without_template(self):
        """A log without a template is keyed by its own id."""
        log = ActivityLogRecord(id="L2", entry_date=MONDAY, notes="Extra swings")
        (item,) = normalize_activity_logs([log])

        assert item.title == "Custom Activity"
        assert item.source_id == "log-L2"
        assert item.order_key == "ca:log-L2"
        assert item.description == "Extra swings"


class TestSystemTasks:
    """Tests for default-daily and module-gated task expansion."""

    def test_defaults_for_a_monday(self):
        """The four default tasks show on a Monday."""
        items = expand_system_tasks([], _ctx(days=[MONDAY]))
        keys = [item.order_key for item in items]

        assert keys == [
            "gp:morning-checkin",
            "gp:nutrition",
            "gp:mindfuel",
            "gp:night-reflection",
            "gp:video-hitting",
            "gp:video-pitching",
            "gp:tex-vision",
            "gp:long-toss",
        ]
        assert "gp:arm-care" not in keys

    def test_gated_tasks_carry_module_gate(self):
        """Module tasks carry the capability they require."""
        items = {item.source_id: item for item in expand_system_tasks([], _ctx(days=[MONDAY]))}
        assert items["tex-vision"].module_gate == "hitting"
        assert items["nutrition"].module_gate is None
        assert items["tex-vision"].link == "/analyze/hitting?sport=baseball&tab=tex-vision"

    def test_explicit_schedule_overrides_recommended_days(self):
        """A task schedule row replaces the recommended days."""
        schedule = TaskScheduleRecord(task_id="arm-care", display_days=(1,), display_time="07:30:00")
        items = {item.source_id: item for item in expand_system_tasks([schedule], _ctx(days=[MONDAY]))}

        arm_care = items["arm-care"]
        assert arm_care.category == PlanCategory.SYSTEM_SCHEDULED_TASK
        assert arm_care.start_time == "07:30"
        assert arm_care.order_key == "gp:arm-care"

    def test_explicit_schedule_can_remove_days(self):
        """An empty schedule row removes the task from every day."""
        schedule = TaskScheduleRecord(task_id="mindfuel", display_days=())
        items = expand_system_tasks([schedule], _ctx(days=[MONDAY]))
        assert "gp:mindfuel" not in [item.order_key for item in items]

    def test_null_display_days_is_not_an_explicit_schedule(self):
        """A schedule row without display days keeps the default placement."""
        schedule = TaskScheduleRecord(task_id="tex-vision", display_days=None, display_time="09:00")
        items = {item.source_id: item for item in expand_system_tasks([schedule], _ctx(days=[MONDAY]))}
        assert items["tex-vision"].category == PlanCategory.MODULE_GATED_TASK
        assert items["tex-vision"].start_time is None

    def test_completion_marker(self):
        """A completion marker completes the task for that day."""
        items = {item.source_id: item for item in expand_system_tasks([], _ctx(days=[MONDAY], markers={"nutrition": {MONDAY}}))}
        assert items["nutrition"].completed is True
        assert items["mindfuel"].completed is False

    def test_skip_hides_task_unless_completed(self):
        """A skipped task shows only when it was completed."""
        skip = SkipRecord(item_id="nutrition", item_type="default_daily_task", skip_days=(1,))

        hidden = expand_system_tasks([], _ctx(days=[MONDAY], skips=[skip]))
        assert "gp:nutrition" not in [item.order_key for item in hidden]

        shown = expand_system_tasks([], _ctx(days=[MONDAY], skips=[skip], markers={"nutrition": {MONDAY}}))
        nutrition = [item for item in shown if item.order_key == "gp:nutrition"]
        assert len(nutrition) == 1
        assert nutrition[0].completed is True


class TestProgramSessions:
    """Tests for structured program sessions."""

    def test_today_shows_week_and_day(self):
        """Today's program session shows the week and day."""
        progress = ProgramProgressRecord(sub_module="iron-bambino", module="hitting", current_week=2, current_day=3)
        items = expand_program_sessions([progress], [], _ctx())

        assert [item.date for item in items] == [MONDAY, WEDNESDAY, date(2024, 1, 19)]
        assert items[0].description == "Week 2 · Day 3"
        assert items[1].description == PROGRAM_PLACEHOLDER
        assert {item.order_key for item in items} == {"gp:workout-hitting"}
        assert items[0].module_gate == "hitting"

    def test_last_workout_marks_completion(self):
        """The last workout date completes that day's session."""
        progress = ProgramProgressRecord(sub_module="iron-bambino", module="hitting", last_workout_date=MONDAY)
        items = expand_program_sessions([progress], [], _ctx())
        assert [item.completed for item in items] == [True, False, False]

    def test_other_sport_ignored(self):
        """Progress for another sport is ignored."""
        progress = ProgramProgressRecord(sub_module="heat-factory", module="pitching", sport="softball")
        assert expand_program_sessions([progress], [], _ctx(sport="baseball")) == []

    def test_unknown_program_ignored(self):
        """Unknown programs produce no items."""
        progress = ProgramProgressRecord(sub_module="unknown", module="hitting")
        assert expand_program_sessions([progress], [], _ctx()) == []

    def test_schedule_row_moves_program(self):
        """A schedule row moves the program to its days."""
        progress = ProgramProgressRecord(sub_module="heat-factory", module="pitching")
        schedule = TaskScheduleRecord(task_id="workout-pitching", display_days=(0,), display_time="08:00")
        items = expand_program_sessions([progress], [schedule], _ctx())
        assert [item.date for item in items] == [SUNDAY]
        assert items[0].start_time == "08:00"


class TestEventsAndMeals:
    def test_meal_keyed_by_row_id(self):
        """Meals are keyed by row id, not meal type."""
        meal = MealRecord(id="m1", planned_date=MONDAY, meal_type="breakfast", planned_time="07:00:00")
        (item,) = normalize_meals([meal], _ctx())
        assert item.order_key == "meal:m1"
        assert item.title == "Breakfast"
        assert item.start_time == "07:00"

    def test_skipped_meal_hidden_unless_completed(self):
        """A skipped meal shows only when completed."""
        skip = SkipRecord(item_id="m1", item_type="meal", skip_days=(1,))
        open_meal = MealRecord(id="m1", planned_date=MONDAY, meal_type="lunch")
        eaten_meal = MealRecord(id="m1", planned_date=MONDAY, meal_type="lunch", completed=True)
        assert normalize_meals([open_meal], _ctx(skips=[skip])) == []
        assert len(normalize_meals([eaten_meal], _ctx(skips=[skip]))) == 1

    def test_manual_event(self):
        """Manual events are editable and deletable."""
        event = ManualEventRecord(id="e1", event_date=MONDAY, title="Team dinner", start_time="18:00", all_day=False)
        (item,) = normalize_manual_events([event])
        assert item.order_key == "man:e1"
        assert item.editable is True
        assert item.category == PlanCategory.MANUAL_EVENT

    def test_athlete_event_title_from_type(self):
        """Athlete events without a title use their type."""
        event = AthleteEventRecord(id="a1", event_date=MONDAY, event_type="game", event_time="19:00")
        (item,) = normalize_athlete_events([event])
        assert item.title == "Game"
        assert item.order_key == "ae:a1"
        assert item.start_time == "19:00"
