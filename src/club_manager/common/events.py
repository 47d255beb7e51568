"""In-process publish/subscribe between services.

Services publish named events after their write is committed; subscribers
(notifications, suspension reconciliation) react to them. Built on blinker
signals, one namespace per bus so containers never share subscribers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from blinker import ANY, Namespace

from .datetime_utils import now_local

logger = logging.getLogger(__name__)

EXPENSE_CREATED = "expense.created"
EXPENSE_STATUS_CHANGED = "expense.status_changed"
TRANSFER_CREATED = "transfer.created"
TRANSFER_STATUS_CHANGED = "transfer.status_changed"
PAYMENT_RECORDED = "payment.recorded"
MEMBER_SUSPENDED = "member.suspended"
MEMBER_REACTIVATED = "member.reactivated"


@dataclass(frozen=True)
class Event:
    name: str
    payload: dict[str, Any]
    occurred_at: datetime = field(default_factory=now_local)


Handler = Callable[[Event], None]


class EventBus:
    def __init__(self) -> None:
        self._signals = Namespace()

    def subscribe(self, name: str, handler: Handler) -> Callable[[], None]:
        """Register handler for name; returns a callable that unsubscribes it."""
        signal = self._signals.signal(name)
        signal.connect(handler, weak=False)

        def unsubscribe() -> None:
            signal.disconnect(handler)

        return unsubscribe

    def publish(self, name: str, **payload: Any) -> Event:
        event = Event(name=name, payload=dict(payload))
        signal = self._signals.signal(name)
        for receiver in list(signal.receivers_for(ANY)):
            try:
                receiver(event)
            except Exception:
                # The publishing operation is already committed.
                logger.exception("subscriber %r failed for event %s", receiver, name)
        return event
