from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import ActivityType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Activity, Announcement, AnnouncementAuthor, Photo
from .repository import ActivityRepository

_ACTIVITY_SELECT = """
    SELECT activity_id, type, title, description, activity_date, end_date, result,
           created_by, created_at, updated_at
    FROM activities
"""

_ANNOUNCEMENT_SELECT = """
    SELECT a.announcement_id, a.title, a.content, a.created_at, a.author_id,
           m.first_name AS author_first_name, m.last_name AS author_last_name
    FROM announcements a
    LEFT JOIN members m ON m.member_id = a.author_id
"""

_PHOTO_SELECT = """
    SELECT photo_id, url, caption, activity_id, uploaded_by, created_at
    FROM activity_photos
"""


def _to_activity(r: dict) -> Activity:
    return Activity(
        activity_id=int(r["activity_id"]),
        type=ActivityType(r["type"]),
        title=r["title"],
        description=r.get("description"),
        date=r["activity_date"],
        end_date=r.get("end_date"),
        result=r.get("result"),
        created_by=r.get("created_by"),
        created_at=r["created_at"],
        updated_at=r.get("updated_at"),
    )


def _to_photo(r: dict) -> Photo:
    return Photo(
        photo_id=int(r["photo_id"]),
        url=r["url"],
        caption=r.get("caption"),
        activity_id=r.get("activity_id"),
        uploaded_by=r.get("uploaded_by"),
        created_at=r["created_at"],
    )


def _to_announcement(r: dict) -> Announcement:
    author = None
    if r.get("author_id") is not None:
        author = AnnouncementAuthor(
            member_id=int(r["author_id"]),
            first_name=r.get("author_first_name") or "",
            last_name=r.get("author_last_name") or "",
        )
    return Announcement(
        announcement_id=int(r["announcement_id"]),
        title=r["title"],
        content=r["content"],
        created_at=r["created_at"],
        author=author,
    )


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_activities(self) -> Sequence[Activity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ACTIVITY_SELECT + " ORDER BY activity_date DESC, activity_id DESC")
            return [_to_activity(r) for r in fetchall(cur)]

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ACTIVITY_SELECT + " WHERE activity_id=%s", (int(activity_id),))
            row = fetchone(cur)
            return _to_activity(row) if row else None

    def create_activity(
        self,
        *,
        type: ActivityType,
        title: str,
        description: Optional[str],
        date: date,
        end_date: Optional[date],
        result: Optional[str],
        created_by: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activities(type, title, description, activity_date, end_date, result, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (type.value, title, description, date, end_date, result, int(created_by)),
            )
            return int(cur.lastrowid)

    def list_announcements(self) -> Sequence[Announcement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ANNOUNCEMENT_SELECT + " ORDER BY a.created_at DESC, a.announcement_id DESC")
            return [_to_announcement(r) for r in fetchall(cur)]

    def get_announcement(self, announcement_id: int) -> Optional[Announcement]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_ANNOUNCEMENT_SELECT + " WHERE a.announcement_id=%s", (int(announcement_id),))
            row = fetchone(cur)
            return _to_announcement(row) if row else None

    def create_announcement(self, *, title: str, content: str, author_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO announcements(title, content, author_id) VALUES(%s,%s,%s)",
                (title, content, int(author_id)),
            )
            return int(cur.lastrowid)

    def count_created_since(self, since: datetime) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM activities WHERE created_at > %s) +
                    (SELECT COUNT(*) FROM announcements WHERE created_at > %s) AS n
                """,
                (since, since),
            )
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def list_photos(self, activity_id: int) -> Sequence[Photo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PHOTO_SELECT + " WHERE activity_id=%s ORDER BY created_at, photo_id", (int(activity_id),))
            return [_to_photo(r) for r in fetchall(cur)]

    def get_photo(self, photo_id: int) -> Optional[Photo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PHOTO_SELECT + " WHERE photo_id=%s", (int(photo_id),))
            row = fetchone(cur)
            return _to_photo(row) if row else None

    def create_photo(self, *, url: str, caption: Optional[str], activity_id: Optional[int], uploaded_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO activity_photos(url, caption, activity_id, uploaded_by) VALUES(%s,%s,%s,%s)",
                (url, caption, activity_id, int(uploaded_by)),
            )
            return int(cur.lastrowid)
