from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.enums import MemberAction, Role

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


@dataclass(frozen=True)
class DBTarget:
    host: str
    port: int
    user: str
    password: str
    database: str


def _as_target(db_config: dict) -> DBTarget:
    return DBTarget(
        host=str(db_config.get("host", "localhost")),
        port=int(db_config.get("port", 3306)),
        user=str(db_config.get("user", "root")),
        password=str(db_config.get("password", "")),
        database=str(db_config.get("database", "club_manager")),
    )


def _connect(target: DBTarget, *, with_database: bool = True):
    kwargs = dict(host=target.host, port=target.port, user=target.user, password=target.password, use_pure=True)
    if with_database:
        kwargs["database"] = target.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql independent of the configured database name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return re.sub(r"(?m)^\s*--.*$", "", sql)


def iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    for ch in sql:
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
        elif ch == '"' and not in_single:
            in_double = not in_double
        elif ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = _as_target(db_config)
    conn = _connect(target, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    target = _as_target(db_config)
    ensure_database_exists(db_config)

    sql = _strip_comments(_strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8")))
    conn = _connect(target)
    try:
        cur = conn.cursor()
        for stmt in iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema applied to %s@%s/%s", target.user, target.host, target.database)


def ensure_admin(db_config: dict, *, phone: str, password: str) -> bool:
    """Create the bootstrap ADMIN account when no member has that phone.

    Returns True when an account was created.
    """
    target = _as_target(db_config)
    conn = _connect(target)
    try:
        cur = conn.cursor(dictionary=True)
        cur.execute("SELECT member_id FROM members WHERE phone=%s", (phone,))
        if cur.fetchone():
            return False
        cur.execute(
            """
            INSERT INTO members(phone, first_name, last_name, role, password_hash, profile_completed)
            VALUES(%s, %s, %s, %s, %s, 1)
            """,
            (phone, "Admin", "Club", Role.ADMIN.value, generate_password_hash(password)),
        )
        cur.execute(
            "INSERT INTO member_audit_log(member_id, action, details) VALUES(%s, %s, %s)",
            (int(cur.lastrowid), MemberAction.CREATED.value, "bootstrap admin"),
        )
        conn.commit()
        logger.info("bootstrap admin account %s created", phone)
        return True
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def ensure_default_cash_box(db_config: dict, *, name: str = "Caisse principale") -> bool:
    """Create the default cash box when none exists. Returns True when created."""
    conn = _connect(_as_target(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SELECT COUNT(*) FROM cash_boxes")
        (count,) = cur.fetchone()
        if count:
            return False
        cur.execute(
            "INSERT INTO cash_boxes(name, description, sort_order, is_default) VALUES(%s, %s, 0, 1)",
            (name, "Caisse par défaut"),
        )
        conn.commit()
        logger.info("default cash box %r created", name)
        return True
    finally:
        conn.close()
