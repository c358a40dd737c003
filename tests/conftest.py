"""Root conftest for all tests.

Provides a file-backed SQLite database per test and in-memory plan
sources for engine tests.
"""

import asyncio
from contextlib import contextmanager
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gameplan.calendar.records import SourceSnapshot
from gameplan.calendar.sources import PlanSources
from gameplan.db.models import Base
from gameplan.db.session import _handle_session_commit

# Monday
MONDAY = date(2024, 1, 15)


@pytest.fixture
def db_engine(tmp_path):
    """SQLite engine on a temporary file.

    A file database is used instead of :memory: because readers run on
    worker threads with their own connections.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'gameplan_test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Drop-in replacement for gameplan.db.session.get_session bound to the test engine."""
    session_local = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    @contextmanager
    def factory():
        session = session_local()
        try:
            yield session
            _handle_session_commit(session)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory


class FakePlanSources(PlanSources):
    """Serves a SourceSnapshot's fields; fields named in `failing` raise."""

    def __init__(self, snapshot: SourceSnapshot | None = None, failing=()):
        self.snapshot = snapshot or SourceSnapshot()
        self.failing = set(failing)
        self.passes = 0
        # When set, the first pass blocks on this event before returning templates
        self.hold_first_pass: asyncio.Event | None = None

    async def _read(self, field_name: str):
        await asyncio.sleep(0)
        if field_name in self.failing:
            raise RuntimeError(f"{field_name} unavailable")
        return getattr(self.snapshot, field_name)

    async def fetch_templates(self, user_id, start, end):
        self.passes += 1
        if self.passes == 1 and self.hold_first_pass is not None:
            await self.hold_first_pass.wait()
        return await self._read("templates")

    async def fetch_activity_logs(self, user_id, start, end):
        return await self._read("activity_logs")

    async def fetch_manual_events(self, user_id, start, end):
        return await self._read("manual_events")

    async def fetch_athlete_events(self, user_id, start, end):
        return await self._read("athlete_events")

    async def fetch_task_schedules(self, user_id, start, end):
        return await self._read("task_schedules")

    async def fetch_skips(self, user_id, start, end):
        return await self._read("skips")

    async def fetch_program_progress(self, user_id, start, end):
        return await self._read("program_progress")

    async def fetch_meals(self, user_id, start, end):
        return await self._read("meals")

    async def fetch_date_locks(self, user_id, start, end):
        return await self._read("date_locks")

    async def fetch_weekly_locks(self, user_id, start, end):
        return await self._read("weekly_locks")

    async def fetch_week_overrides(self, user_id, start, end):
        return await self._read("week_overrides")

    async def fetch_capabilities(self, user_id, start, end):
        return await self._read("capabilities")

    async def fetch_completion_markers(self, user_id, start, end):
        return await self._read("completion_markers")

    async def fetch_recap_anchor(self, user_id, start, end):
        return await self._read("recap_anchor")


@pytest.fixture
def snapshot() -> SourceSnapshot:
    return SourceSnapshot()


@pytest.fixture
def fake_sources(snapshot) -> FakePlanSources:
    return FakePlanSources(snapshot)
