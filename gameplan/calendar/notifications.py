"""In-process change notifications for plan source tables.

Events carry no payload guarantee beyond "something changed in this
table" (optionally for one user); subscribers re-read what they need.
Subscriptions must be cancelled on teardown so repeated service
instances do not accumulate listeners.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from itertools import count

from loguru import logger


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str = "UPDATE"  # INSERT, UPDATE, DELETE
    user_id: str | None = None


ChangeListener = Callable[[ChangeEvent], None]


@dataclass
class Subscription:
    """Handle returned by ChangeNotifier.subscribe."""

    id: int
    table: str
    user_id: str | None
    listener: ChangeListener
    _notifier: ChangeNotifier | None = None

    @property
    def active(self) -> bool:
        return self._notifier is not None

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self._notifier is not None:
            self._notifier._remove(self)
            self._notifier = None


class ChangeNotifier:
    """Table-scoped publish/subscribe hub."""

    def __init__(self) -> None:
        self._ids = count(1)
        self._subscriptions: dict[int, Subscription] = {}

    def subscribe(self, table: str, listener: ChangeListener, user_id: str | None = None) -> Subscription:
        """Subscribe to changes on `table`, optionally only those for `user_id`."""
        subscription = Subscription(
            id=next(self._ids), table=table, user_id=user_id, listener=listener, _notifier=self
        )
        self._subscriptions[subscription.id] = subscription
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to every matching subscriber.

        A failing listener is logged and does not stop delivery to the rest.

        Returns:
            Number of listeners the event was delivered to
        """
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.table != event.table:
                continue
            if subscription.user_id is not None and event.user_id is not None and subscription.user_id != event.user_id:
                continue
            try:
                subscription.listener(event)
            except Exception as e:
                logger.error(f"[PLAN_NOTIFY] Listener {subscription.id} failed for table={event.table}: {e}")
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, table: str | None = None) -> int:
        if table is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions.values() if s.table == table)
