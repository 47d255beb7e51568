from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import MemberAction, Role
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import AuditLogEntry, Member
from .repository import MemberRepository

_MEMBER_COLUMNS = """
    member_id, phone, first_name, last_name, role, password_hash, is_suspended,
    reactivated_at, profile_completed, email, neighborhood, secondary_contact,
    profile_photo_url, activities_seen_at, created_at, updated_at
"""

_UPDATABLE = {
    "phone",
    "first_name",
    "last_name",
    "role",
    "password_hash",
    "profile_completed",
    "email",
    "neighborhood",
    "secondary_contact",
    "profile_photo_url",
    "activities_seen_at",
}


def _to_member(r: dict) -> Member:
    return Member(
        member_id=int(r["member_id"]),
        phone=r["phone"],
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        role=Role(r["role"]),
        password_hash=r.get("password_hash"),
        is_suspended=bool(r.get("is_suspended")),
        reactivated_at=r.get("reactivated_at"),
        profile_completed=bool(r.get("profile_completed")),
        email=r.get("email"),
        neighborhood=r.get("neighborhood"),
        secondary_contact=r.get("secondary_contact"),
        profile_photo_url=r.get("profile_photo_url"),
        activities_seen_at=r.get("activities_seen_at"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, member_id: int) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE member_id=%s", (int(member_id),))
            row = fetchone(cur)
            return _to_member(row) if row else None

    def get_by_phone(self, phone: str) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE phone=%s", (phone,))
            row = fetchone(cur)
            return _to_member(row) if row else None

    def list_all(self) -> Sequence[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members ORDER BY last_name, first_name")
            return [_to_member(r) for r in fetchall(cur)]

    def list_by_roles(self, roles: Iterable[Role]) -> Sequence[Member]:
        values = [r.value for r in roles]
        if not values:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_MEMBER_COLUMNS} FROM members WHERE role IN ({in_clause(values)})",
                tuple(values),
            )
            return [_to_member(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        phone: str,
        first_name: str,
        last_name: str,
        role: Role,
        password_hash: Optional[str],
        email: Optional[str] = None,
        neighborhood: Optional[str] = None,
        secondary_contact: Optional[str] = None,
        profile_photo_url: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO members(
                    phone, first_name, last_name, role, password_hash,
                    email, neighborhood, secondary_contact, profile_photo_url
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    phone,
                    first_name,
                    last_name,
                    role.value,
                    password_hash,
                    email,
                    neighborhood,
                    secondary_contact,
                    profile_photo_url,
                ),
            )
            return int(cur.lastrowid)

    def update_fields(self, member_id: int, **fields) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported member columns: {sorted(unknown)}")
        if not fields:
            return self.get_by_id(member_id) is not None

        assignments = ", ".join(f"{col}=%s" for col in fields)
        values = [v.value if isinstance(v, Role) else v for v in fields.values()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE members SET {assignments}, updated_at=NOW() WHERE member_id=%s",
                (*values, int(member_id)),
            )
            return cur.rowcount > 0

    def set_suspension(
        self,
        member_id: int,
        *,
        is_suspended: bool,
        reactivated_at: Optional[datetime],
        expect_suspended: Optional[bool] = None,
    ) -> bool:
        sql = "UPDATE members SET is_suspended=%s, reactivated_at=%s, updated_at=NOW() WHERE member_id=%s"
        params: list = [1 if is_suspended else 0, reactivated_at, int(member_id)]
        if expect_suspended is not None:
            sql += " AND is_suspended=%s"
            params.append(1 if expect_suspended else 0)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def delete_by_id(self, member_id: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM members WHERE member_id=%s", (int(member_id),))
                return cur.rowcount > 0
        except mysql.connector.IntegrityError as exc:
            if exc.errno != errorcode.ER_ROW_IS_REFERENCED_2:
                raise
            raise ConflictError("Ce membre a des paiements enregistrés et ne peut pas être supprimé")

    def add_audit_entry(
        self,
        *,
        member_id: int,
        action: MemberAction,
        performed_by: Optional[int],
        details: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO member_audit_log(member_id, action, performed_by, details)
                VALUES(%s,%s,%s,%s)
                """,
                (int(member_id), action.value, performed_by, details),
            )
            return int(cur.lastrowid)

    def list_audit_log(self, member_id: int, *, limit: int = 100) -> Sequence[AuditLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT entry_id, member_id, action, performed_by, details, created_at
                FROM member_audit_log
                WHERE member_id=%s
                ORDER BY created_at DESC, entry_id DESC
                LIMIT %s
                """,
                (int(member_id), int(limit)),
            )
            return [
                AuditLogEntry(
                    entry_id=int(r["entry_id"]),
                    member_id=int(r["member_id"]),
                    action=MemberAction(r["action"]),
                    performed_by=r.get("performed_by"),
                    details=r.get("details"),
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]
