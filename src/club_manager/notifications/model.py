from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationChannel, NotificationKind


@dataclass(frozen=True)
class Notification:
    """In-app notification shown in a member's notification center."""

    notification_id: int
    member_id: int
    message: str
    created_at: datetime
    title: Optional[str] = None
    read: bool = False


@dataclass(frozen=True)
class ReminderReport:
    sent: int
    total: int
    message: str


@dataclass(frozen=True)
class LogMember:
    member_id: int
    first_name: str
    last_name: str
    phone: str


@dataclass(frozen=True)
class NotificationLog:
    """One reminder or confirmation sent to a member."""

    log_id: int
    member_id: int
    channel: NotificationChannel
    type: NotificationKind
    sent_at: datetime
    payload: Optional[str] = None
    member: Optional[LogMember] = None
