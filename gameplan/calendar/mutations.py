"""Write access for user-editable plan records.

Only manual calendar events and custom activity logs are editable here;
system tasks, program sessions and meals are edited by their owning
features. Stores raise on failure; the service turns failures into a
boolean result.
"""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable

from loguru import logger
from sqlalchemy import select

from gameplan.calendar.notifications import ChangeEvent, ChangeNotifier
from gameplan.calendar.schemas import ActivityLogCreate, ActivityLogUpdate, CalendarEventCreate, CalendarEventUpdate
from gameplan.db.models import CalendarEvent, CustomActivityLog, CustomActivityTemplate
from gameplan.db.session import get_session


class RecordNotFoundError(LookupError):
    """Raised when a mutation targets a row the user does not own or that does not exist."""

    def __init__(self, table: str, record_id: str):
        self.table = table
        self.record_id = record_id
        super().__init__(f"{table} record {record_id} not found")


class PlanMutations(ABC):
    """Mutation interface for user-editable plan records."""

    @abstractmethod
    async def insert_event(self, user_id: str, payload: CalendarEventCreate) -> str: ...

    @abstractmethod
    async def update_event(self, user_id: str, event_id: str, updates: CalendarEventUpdate) -> None: ...

    @abstractmethod
    async def delete_event(self, user_id: str, event_id: str) -> None: ...

    @abstractmethod
    async def insert_activity_log(self, user_id: str, payload: ActivityLogCreate) -> str: ...

    @abstractmethod
    async def update_activity_log(self, user_id: str, log_id: str, updates: ActivityLogUpdate) -> None: ...

    @abstractmethod
    async def delete_activity_log(self, user_id: str, log_id: str) -> None: ...


class SqlPlanMutations(PlanMutations):
    """SQLAlchemy-backed mutation store."""

    def __init__(self, session_factory: Callable = get_session, notifier: ChangeNotifier | None = None):
        self._session_factory = session_factory
        self._notifier = notifier

    def _publish(self, table: str, user_id: str, action: str) -> None:
        if self._notifier is not None:
            self._notifier.publish(ChangeEvent(table=table, action=action, user_id=user_id))

    def _insert_event(self, user_id: str, payload: CalendarEventCreate) -> str:
        with self._session_factory() as session:
            event = CalendarEvent(id=str(uuid.uuid4()), user_id=user_id, **payload.model_dump())
            session.add(event)
            logger.debug(f"[PLAN_MUTATE] Inserted calendar event {event.id} for user={user_id}")
            return event.id

    async def insert_event(self, user_id: str, payload: CalendarEventCreate) -> str:
        event_id = await asyncio.to_thread(self._insert_event, user_id, payload)
        self._publish("calendar_events", user_id, "INSERT")
        return event_id

    def _get_owned(self, session, model, table: str, user_id: str, record_id: str):
        row = session.execute(select(model).where(model.id == record_id, model.user_id == user_id)).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError(table, record_id)
        return row

    def _update_event(self, user_id: str, event_id: str, updates: CalendarEventUpdate) -> None:
        with self._session_factory() as session:
            event = self._get_owned(session, CalendarEvent, "calendar_events", user_id, event_id)
            for name, value in updates.model_dump(exclude_unset=True).items():
                setattr(event, name, value)

    async def update_event(self, user_id: str, event_id: str, updates: CalendarEventUpdate) -> None:
        await asyncio.to_thread(self._update_event, user_id, event_id, updates)
        self._publish("calendar_events", user_id, "UPDATE")

    def _delete_event(self, user_id: str, event_id: str) -> None:
        with self._session_factory() as session:
            event = self._get_owned(session, CalendarEvent, "calendar_events", user_id, event_id)
            session.delete(event)

    async def delete_event(self, user_id: str, event_id: str) -> None:
        await asyncio.to_thread(self._delete_event, user_id, event_id)
        self._publish("calendar_events", user_id, "DELETE")

    def _insert_activity_log(self, user_id: str, payload: ActivityLogCreate) -> str:
        with self._session_factory() as session:
            if payload.template_id is not None:
                self._get_owned(
                    session, CustomActivityTemplate, "custom_activity_templates", user_id, payload.template_id
                )
            log = CustomActivityLog(id=str(uuid.uuid4()), user_id=user_id, **payload.model_dump())
            session.add(log)
            logger.debug(f"[PLAN_MUTATE] Inserted activity log {log.id} for user={user_id}")
            return log.id

    async def insert_activity_log(self, user_id: str, payload: ActivityLogCreate) -> str:
        log_id = await asyncio.to_thread(self._insert_activity_log, user_id, payload)
        self._publish("custom_activity_logs", user_id, "INSERT")
        return log_id

    def _update_activity_log(self, user_id: str, log_id: str, updates: ActivityLogUpdate) -> None:
        with self._session_factory() as session:
            log = self._get_owned(session, CustomActivityLog, "custom_activity_logs", user_id, log_id)
            for name, value in updates.model_dump(exclude_unset=True).items():
                setattr(log, name, value)

    async def update_activity_log(self, user_id: str, log_id: str, updates: ActivityLogUpdate) -> None:
        await asyncio.to_thread(self._update_activity_log, user_id, log_id, updates)
        self._publish("custom_activity_logs", user_id, "UPDATE")

    def _delete_activity_log(self, user_id: str, log_id: str) -> None:
        with self._session_factory() as session:
            log = self._get_owned(session, CustomActivityLog, "custom_activity_logs", user_id, log_id)
            session.delete(log)

    async def delete_activity_log(self, user_id: str, log_id: str) -> None:
        await asyncio.to_thread(self._delete_activity_log, user_id, log_id)
        self._publish("custom_activity_logs", user_id, "DELETE")
