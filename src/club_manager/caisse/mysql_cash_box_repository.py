from __future__ import annotations

from typing import Optional, Sequence

from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import CashBox
from .repository import CashBoxRepository

_SELECT = """
    SELECT cash_box_id, name, description, sort_order, is_default, created_at, updated_at
    FROM cash_boxes
"""

_COLUMNS = {"name": "name", "description": "description", "order": "sort_order"}


def _to_box(r: dict) -> CashBox:
    return CashBox(
        cash_box_id=int(r["cash_box_id"]),
        name=r["name"],
        description=r.get("description"),
        order=int(r.get("sort_order") or 0),
        is_default=bool(r.get("is_default")),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLCashBoxRepository(CashBoxRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[CashBox]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " ORDER BY sort_order, cash_box_id")
            return [_to_box(r) for r in fetchall(cur)]

    def get_by_id(self, cash_box_id: int) -> Optional[CashBox]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE cash_box_id=%s", (int(cash_box_id),))
            row = fetchone(cur)
            return _to_box(row) if row else None

    def create(self, *, name: str, description: Optional[str], order: int, is_default: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if is_default:
                cur.execute("UPDATE cash_boxes SET is_default=0 WHERE is_default=1")
            cur.execute(
                "INSERT INTO cash_boxes(name, description, sort_order, is_default) VALUES(%s,%s,%s,%s)",
                (name, description, int(order), 1 if is_default else 0),
            )
            return int(cur.lastrowid)

    def update(self, cash_box_id: int, **fields) -> bool:
        unknown = set(fields) - set(_COLUMNS)
        if unknown:
            raise ValueError(f"Unsupported cash box fields: {sorted(unknown)}")
        if not fields:
            return self.get_by_id(cash_box_id) is not None

        assignments = ", ".join(f"{_COLUMNS[k]}=%s" for k in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE cash_boxes SET {assignments}, updated_at=NOW() WHERE cash_box_id=%s",
                (*fields.values(), int(cash_box_id)),
            )
            return cur.rowcount > 0

    def set_default(self, cash_box_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT cash_box_id FROM cash_boxes WHERE cash_box_id=%s FOR UPDATE", (int(cash_box_id),))
            if not fetchone(cur):
                return False
            cur.execute("UPDATE cash_boxes SET is_default=0 WHERE is_default=1 AND cash_box_id<>%s", (int(cash_box_id),))
            cur.execute(
                "UPDATE cash_boxes SET is_default=1, updated_at=NOW() WHERE cash_box_id=%s",
                (int(cash_box_id),),
            )
            return True

    def delete_and_reassign(self, cash_box_id: int, *, default_id: int) -> bool:
        box_id = int(cash_box_id)
        target = int(default_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE expenses SET cash_box_id=%s WHERE cash_box_id=%s", (target, box_id))
            cur.execute("UPDATE cash_box_transfers SET from_cash_box_id=%s WHERE from_cash_box_id=%s", (target, box_id))
            cur.execute("UPDATE cash_box_transfers SET to_cash_box_id=%s WHERE to_cash_box_id=%s", (target, box_id))
            cur.execute("DELETE FROM cash_boxes WHERE cash_box_id=%s AND is_default=0", (box_id,))
            if cur.rowcount == 0:
                # Raising here rolls the reassignments back with the delete.
                raise ConflictError("La caisse n'a pas pu être supprimée")
            return True
