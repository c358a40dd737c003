"""Tests for the SQLAlchemy-backed readers and mutation store."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select

from gameplan.calendar.mutations import RecordNotFoundError, SqlPlanMutations
from gameplan.calendar.notifications import ChangeNotifier
from gameplan.calendar.schemas import ActivityLogCreate, CalendarEventCreate, CalendarEventUpdate
from gameplan.calendar.service import DailyPlanService
from gameplan.calendar.sources import SqlPlanSources, fetch_snapshot
from gameplan.db.models import (
    AthleteEvent,
    CalendarDayOrder,
    CalendarEvent,
    CustomActivityLog,
    CustomActivityTemplate,
    GamePlanLockedDay,
    GamePlanTaskSchedule,
    GamePlanWeekOverride,
    MealPlan,
    SubModuleProgress,
    UserModule,
    VaultNutritionLog,
    VaultStreak,
    Video,
)

MONDAY = date(2024, 1, 15)
SUNDAY = date(2024, 1, 21)
USER = "user-1"


@pytest.fixture
def seeded(session_factory):
    """A user with one row in every source table, plus another user's rows."""
    with session_factory() as session:
        session.add_all(
            [
                UserModule(user_id=USER, module="baseball_hitting", created_at=datetime(2024, 1, 1, 9, 0)),
                CustomActivityTemplate(id="t1", user_id=USER, title="Sprints", sport="baseball", recurring_days=[1, 3]),
                CustomActivityTemplate(id="t2", user_id=USER, title="Softball drills", sport="softball", recurring_days=[1]),
                CustomActivityTemplate(id="t3", user_id="user-2", title="Not mine", recurring_days=[1]),
                CustomActivityLog(id="L1", user_id=USER, template_id="t1", entry_date=MONDAY, completed=True),
                CalendarEvent(id="e1", user_id=USER, event_date=MONDAY, title="Team dinner", start_time="18:00"),
                CalendarEvent(id="e2", user_id=USER, event_date=MONDAY + timedelta(days=30), title="Later"),
                AthleteEvent(id="a1", user_id=USER, event_date=MONDAY, event_type="game", event_time="19:00"),
                GamePlanTaskSchedule(user_id=USER, task_id="mindfuel", display_days=[1], display_time="06:00"),
                SubModuleProgress(user_id=USER, module="hitting", sub_module="iron-bambino", current_week=2, current_day=1),
                MealPlan(id="m1", user_id=USER, planned_date=MONDAY, meal_type="breakfast", planned_time="07:00"),
                VaultNutritionLog(user_id=USER, entry_date=MONDAY),
                Video(user_id=USER, sport="baseball", created_at=datetime(2024, 1, 16, 12, 0)),
                VaultStreak(user_id=USER, created_at=datetime(2023, 12, 25, 8, 0)),
                CalendarDayOrder(user_id=USER, event_date=MONDAY, locked=True, order_keys=["man:e1", "ae:a1"]),
                GamePlanLockedDay(user_id=USER, day_of_week=3, schedule=[{"taskId": "nutrition", "order": 0}]),
                GamePlanWeekOverride(
                    user_id=USER,
                    day_of_week=1,
                    week_start=date(2024, 1, 14),
                    override_schedule=[{"taskId": "mindfuel", "order": 0}],
                ),
            ]
        )
    return session_factory


class TestSqlPlanSources:
    """Tests for reading each source category."""

    @pytest.mark.asyncio
    async def test_snapshot_reads_every_category(self, seeded):
        """Every reader returns the seeded rows for its category."""
        sources = SqlPlanSources(sport="baseball", session_factory=seeded)
        snapshot = await fetch_snapshot(sources, USER, MONDAY, SUNDAY)

        assert snapshot.failures == {}
        assert [t.id for t in snapshot.templates] == ["t1"]
        assert snapshot.templates[0].recurring_days == (1, 3)
        assert [log.id for log in snapshot.activity_logs] == ["L1"]
        assert snapshot.activity_logs[0].template.title == "Sprints"
        assert [e.id for e in snapshot.manual_events] == ["e1"]
        assert [e.id for e in snapshot.athlete_events] == ["a1"]
        assert snapshot.task_schedules[0].display_days == (1,)
        assert snapshot.program_progress[0].sub_module == "iron-bambino"
        assert [m.id for m in snapshot.meals] == ["m1"]
        assert snapshot.date_locks[0].order_keys == ("man:e1", "ae:a1")
        assert snapshot.weekly_locks[0].schedule[0].task_id == "nutrition"
        assert snapshot.week_overrides[0].week_start == date(2024, 1, 14)
        assert snapshot.capabilities.has("hitting")
        assert snapshot.completion_markers == {"nutrition": {MONDAY}, "video": {date(2024, 1, 16)}}
        assert snapshot.recap_anchor == date(2023, 12, 25)

    @pytest.mark.asyncio
    async def test_recap_anchor_falls_back_to_first_module(self, session_factory):
        """Without a streak the first module purchase anchors the recap."""
        with session_factory() as session:
            session.add(UserModule(user_id=USER, module="baseball_pitching", created_at=datetime(2024, 1, 3, 9, 0)))
            session.add(UserModule(user_id=USER, module="baseball_hitting", created_at=datetime(2024, 1, 5, 9, 0)))

        sources = SqlPlanSources(session_factory=session_factory)
        assert await sources.fetch_recap_anchor(USER, MONDAY, SUNDAY) == date(2024, 1, 3)
        assert await sources.fetch_recap_anchor("nobody", MONDAY, SUNDAY) is None

    @pytest.mark.asyncio
    async def test_end_to_end_view(self, seeded):
        """Seeded rows aggregate into the expected ordered Monday."""
        service = DailyPlanService(
            USER, SqlPlanSources(session_factory=seeded), today_provider=lambda: MONDAY, sport="baseball"
        )
        view = await service.fetch_range(MONDAY, SUNDAY)
        monday = view.order_keys_for(MONDAY)

        assert monday[:2] == ["man:e1", "ae:a1"]
        assert monday.count("ca:t1") == 1
        assert "gp:workout-hitting" in monday
        assert "gp:video-pitching" not in monday
        assert "meal:m1" in monday
        wednesday = view.order_keys_for(MONDAY + timedelta(days=2))
        assert wednesday[0] == "gp:nutrition"
        nutrition = [item for item in view.items_for(MONDAY) if item.order_key == "gp:nutrition"][0]
        assert nutrition.completed is True


class TestSqlPlanMutations:
    """Tests for editing manual events and activity logs."""

    @pytest.mark.asyncio
    async def test_event_lifecycle(self, session_factory):
        """Manual events are inserted, updated and deleted."""
        notifier = ChangeNotifier()
        published = []
        notifier.subscribe("calendar_events", published.append)
        mutations = SqlPlanMutations(session_factory=session_factory, notifier=notifier)

        event_id = await mutations.insert_event(USER, CalendarEventCreate(event_date=MONDAY, title="Lift"))
        await mutations.update_event(USER, event_id, CalendarEventUpdate(start_time="16:30"))

        with session_factory() as session:
            row = session.execute(select(CalendarEvent).where(CalendarEvent.id == event_id)).scalar_one()
            assert row.title == "Lift"
            assert row.start_time == "16:30"

        await mutations.delete_event(USER, event_id)
        with session_factory() as session:
            assert session.get(CalendarEvent, event_id) is None
        assert [event.action for event in published] == ["INSERT", "UPDATE", "DELETE"]

    @pytest.mark.asyncio
    async def test_other_users_event_not_found(self, seeded):
        """Events of another user cannot be changed."""
        mutations = SqlPlanMutations(session_factory=seeded)
        with pytest.raises(RecordNotFoundError):
            await mutations.delete_event("user-2", "e1")

    @pytest.mark.asyncio
    async def test_log_requires_owned_template(self, seeded):
        """A log can only reference the user's own template."""
        mutations = SqlPlanMutations(session_factory=seeded)
        with pytest.raises(RecordNotFoundError):
            await mutations.insert_activity_log(USER, ActivityLogCreate(entry_date=MONDAY, template_id="t3"))

    @pytest.mark.asyncio
    async def test_logging_template_suppresses_projection(self, seeded):
        """A stored log hides the template projection for its day."""
        service = DailyPlanService(
            USER,
            SqlPlanSources(session_factory=seeded),
            SqlPlanMutations(session_factory=seeded),
            today_provider=lambda: MONDAY,
            sport="baseball",
        )
        wednesday = MONDAY + timedelta(days=2)
        await service.fetch_range(MONDAY, SUNDAY)
        before = [i for i in service.view.items_for(wednesday) if i.order_key == "ca:t1"]
        assert before[0].id == "template-t1-2024-01-17"

        assert await service.add_activity_log(ActivityLogCreate(entry_date=wednesday, template_id="t1")) is True

        after = [i for i in service.view.items_for(wednesday) if i.order_key == "ca:t1"]
        assert len(after) == 1
        assert after[0].editable is True

        with seeded() as session:
            logs = session.execute(select(CustomActivityLog).where(CustomActivityLog.entry_date == wednesday)).scalars().all()
            assert len(logs) == 1
