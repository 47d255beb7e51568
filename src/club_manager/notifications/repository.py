from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import NotificationKind
from .model import Notification, NotificationLog


class NotificationRepository(Protocol):
    def create(self, *, member_id: int, title: Optional[str], message: str) -> int:
        raise NotImplementedError

    def create_many(self, *, member_ids: Iterable[int], title: Optional[str], message: str) -> int:
        """Insert one notification per member; returns the number created."""

        raise NotImplementedError

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        raise NotImplementedError

    def list_for_member(self, member_id: int, *, limit: int) -> Sequence[Notification]:
        raise NotImplementedError

    def count_unread(self, member_id: int) -> int:
        raise NotImplementedError

    def mark_read(self, notification_id: int, *, member_id: int) -> bool:
        raise NotImplementedError

    def mark_all_read(self, member_id: int) -> int:
        raise NotImplementedError

    # Send log
    def add_logs(self, *, member_ids: Iterable[int], type: NotificationKind, payload: Optional[str]) -> int:
        """One IN_APP log line per member; returns the number written."""

        raise NotImplementedError

    def list_logs(self, *, member_id: Optional[int] = None, limit: int) -> Sequence[NotificationLog]:
        """Most recent first, with the member's name and phone."""

        raise NotImplementedError
