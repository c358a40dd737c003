"""Per-weekday skip registry and its store.

Skips are keyed by (order key, weekday). A skipped item is hidden on that
weekday unless it has a log or completion marker for the day: a completed
or logged action is never hidden.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select

from gameplan.calendar.notifications import ChangeEvent, ChangeNotifier
from gameplan.calendar.order_keys import is_skip_item_type, skip_order_key
from gameplan.calendar.records import SkipRecord
from gameplan.db.models import CalendarSkippedItem
from gameplan.db.session import get_session


class SkipRegistry:
    """Lookup of which weekdays an order key is skipped on."""

    def __init__(self, records: Iterable[SkipRecord] = ()):
        self._days: dict[str, set[int]] = {}
        for record in records:
            key = skip_order_key(record.item_type, record.item_id)
            if key is None:
                continue
            self._days.setdefault(key, set()).update(record.skip_days)

    def is_skipped(self, order_key: str | None, weekday: int) -> bool:
        if order_key is None:
            return False
        return weekday in self._days.get(order_key, ())

    def should_hide(self, order_key: str | None, weekday: int, *, has_log: bool) -> bool:
        """Hide only skipped items that have nothing logged for the day."""
        return not has_log and self.is_skipped(order_key, weekday)

    def skip_days(self, order_key: str) -> set[int]:
        return set(self._days.get(order_key, ()))


class SkipStore:
    """Writes skip settings. Each write publishes a calendar_skipped_items change."""

    def __init__(self, notifier: ChangeNotifier | None = None, session_factory: Callable = get_session):
        self._notifier = notifier
        self._session_factory = session_factory

    def _publish(self, user_id: str, action: str) -> None:
        if self._notifier is not None:
            self._notifier.publish(ChangeEvent(table="calendar_skipped_items", action=action, user_id=user_id))

    def update_skip_days(self, user_id: str, item_id: str, item_type: str, skip_days: Iterable[int]) -> bool:
        """Replace the skip weekdays for one item. An empty list removes the record."""
        if not is_skip_item_type(item_type):
            logger.warning(f"[PLAN_SKIPS] Rejected unknown item_type={item_type} for item={item_id}")
            return False
        days = sorted({int(day) for day in skip_days})
        if any(not 0 <= day <= 6 for day in days):
            logger.warning(f"[PLAN_SKIPS] Rejected skip days {days} for item={item_id}")
            return False
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(CalendarSkippedItem).where(
                        CalendarSkippedItem.user_id == user_id,
                        CalendarSkippedItem.item_id == item_id,
                        CalendarSkippedItem.item_type == item_type,
                    )
                ).scalar_one_or_none()
                if not days:
                    if existing is not None:
                        session.delete(existing)
                elif existing is None:
                    session.add(
                        CalendarSkippedItem(user_id=user_id, item_id=item_id, item_type=item_type, skip_days=days)
                    )
                else:
                    existing.skip_days = days
                    existing.updated_at = datetime.now(timezone.utc)
        except Exception as e:
            logger.error(f"[PLAN_SKIPS] Failed to update skip days for item={item_id}: {e}")
            return False
        logger.info(f"[PLAN_SKIPS] user={user_id} item={item_type}:{item_id} skip_days={days}")
        self._publish(user_id, "UPDATE")
        return True

    def unskip_for_day(self, user_id: str, item_id: str, item_type: str, weekday: int) -> bool:
        """Remove a single weekday from an item's skip days."""
        if not is_skip_item_type(item_type):
            logger.warning(f"[PLAN_SKIPS] Rejected unknown item_type={item_type} for item={item_id}")
            return False
        try:
            with self._session_factory() as session:
                existing = session.execute(
                    select(CalendarSkippedItem).where(
                        CalendarSkippedItem.user_id == user_id,
                        CalendarSkippedItem.item_id == item_id,
                        CalendarSkippedItem.item_type == item_type,
                    )
                ).scalar_one_or_none()
                if existing is None:
                    return True
                remaining = [day for day in existing.skip_days or [] if day != weekday]
                if remaining:
                    existing.skip_days = remaining
                    existing.updated_at = datetime.now(timezone.utc)
                else:
                    session.delete(existing)
        except Exception as e:
            logger.error(f"[PLAN_SKIPS] Failed to unskip item={item_id} weekday={weekday}: {e}")
            return False
        self._publish(user_id, "UPDATE")
        return True
