from __future__ import annotations

from typing import Iterable, Optional, Sequence

from ..core.enums import NotificationChannel, NotificationKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LogMember, Notification, NotificationLog
from .repository import NotificationRepository

_SELECT = """
    SELECT notification_id, member_id, title, message, is_read, created_at
    FROM notifications
"""

_LOG_SELECT = """
    SELECT l.log_id, l.member_id, l.channel, l.type, l.payload, l.sent_at,
           m.first_name, m.last_name, m.phone
    FROM notification_logs l
    LEFT JOIN members m ON m.member_id = l.member_id
"""


def _to_notification(r: dict) -> Notification:
    return Notification(
        notification_id=int(r["notification_id"]),
        member_id=int(r["member_id"]),
        title=r.get("title"),
        message=r["message"],
        read=bool(r.get("is_read")),
        created_at=r["created_at"],
    )


def _to_log(r: dict) -> NotificationLog:
    member = None
    if r.get("first_name") is not None:
        member = LogMember(
            member_id=int(r["member_id"]),
            first_name=r.get("first_name") or "",
            last_name=r.get("last_name") or "",
            phone=r.get("phone") or "",
        )
    return NotificationLog(
        log_id=int(r["log_id"]),
        member_id=int(r["member_id"]),
        channel=NotificationChannel(r["channel"]),
        type=NotificationKind(r["type"]),
        payload=r.get("payload"),
        sent_at=r["sent_at"],
        member=member,
    )


class MySQLNotificationRepository(NotificationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, *, member_id: int, title: Optional[str], message: str) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO notifications(member_id, title, message) VALUES(%s,%s,%s)",
                (int(member_id), title, message),
            )
            return int(cur.lastrowid)

    def create_many(self, *, member_ids: Iterable[int], title: Optional[str], message: str) -> int:
        rows = [(int(mid), title, message) for mid in member_ids]
        if not rows:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany("INSERT INTO notifications(member_id, title, message) VALUES(%s,%s,%s)", rows)
            return len(rows)

    def get_by_id(self, notification_id: int) -> Optional[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE notification_id=%s", (int(notification_id),))
            row = fetchone(cur)
            return _to_notification(row) if row else None

    def list_for_member(self, member_id: int, *, limit: int) -> Sequence[Notification]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE member_id=%s ORDER BY created_at DESC, notification_id DESC LIMIT %s",
                (int(member_id), int(limit)),
            )
            return [_to_notification(r) for r in fetchall(cur)]

    def count_unread(self, member_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM notifications WHERE member_id=%s AND is_read=0", (int(member_id),))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def mark_read(self, notification_id: int, *, member_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT notification_id FROM notifications WHERE notification_id=%s AND member_id=%s",
                (int(notification_id), int(member_id)),
            )
            if not fetchone(cur):
                return False
            cur.execute("UPDATE notifications SET is_read=1 WHERE notification_id=%s", (int(notification_id),))
            return True

    def mark_all_read(self, member_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE notifications SET is_read=1 WHERE member_id=%s AND is_read=0", (int(member_id),))
            return int(cur.rowcount)

    def add_logs(self, *, member_ids: Iterable[int], type: NotificationKind, payload: Optional[str]) -> int:
        rows = [(int(mid), NotificationChannel.IN_APP.value, type.value, payload) for mid in member_ids]
        if not rows:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "INSERT INTO notification_logs(member_id, channel, type, payload) VALUES(%s,%s,%s,%s)",
                rows,
            )
            return len(rows)

    def list_logs(self, *, member_id: Optional[int] = None, limit: int) -> Sequence[NotificationLog]:
        sql = _LOG_SELECT
        params: list = []
        if member_id is not None:
            sql += " WHERE l.member_id=%s"
            params.append(int(member_id))
        sql += " ORDER BY l.sent_at DESC, l.log_id DESC LIMIT %s"
        params.append(int(limit))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_log(r) for r in fetchall(cur)]
