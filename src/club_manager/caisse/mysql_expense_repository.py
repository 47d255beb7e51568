from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ApprovalStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import Expense
from .mysql_approval import transition_statement
from .repository import ExpenseRepository

_SELECT = """
    SELECT expense_id, amount, description, expense_date, beneficiary, status, cash_box_id,
           requested_by, treasurer_approved_by, treasurer_approved_at,
           commissioner_approved_by, commissioner_approved_at,
           rejected_by, rejected_at, reject_reason, created_at, updated_at
    FROM expenses
"""


def _to_expense(r: dict) -> Expense:
    return Expense(
        expense_id=int(r["expense_id"]),
        amount=as_decimal(r["amount"]),
        description=r["description"],
        expense_date=r["expense_date"],
        status=ApprovalStatus(r["status"]),
        requested_by=int(r["requested_by"]),
        created_at=r["created_at"],
        cash_box_id=r.get("cash_box_id"),
        beneficiary=r.get("beneficiary"),
        treasurer_approved_by=r.get("treasurer_approved_by"),
        treasurer_approved_at=r.get("treasurer_approved_at"),
        commissioner_approved_by=r.get("commissioner_approved_by"),
        commissioner_approved_at=r.get("commissioner_approved_at"),
        rejected_by=r.get("rejected_by"),
        rejected_at=r.get("rejected_at"),
        reject_reason=r.get("reject_reason"),
        updated_at=r.get("updated_at"),
    )


class MySQLExpenseRepository(ExpenseRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        amount: Decimal,
        description: str,
        expense_date: date,
        cash_box_id: Optional[int],
        beneficiary: Optional[str],
        requested_by: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO expenses(amount, description, expense_date, cash_box_id, beneficiary, requested_by, status)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    amount,
                    description,
                    expense_date,
                    cash_box_id,
                    beneficiary,
                    int(requested_by),
                    ApprovalStatus.PENDING_TREASURER.value,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE expense_id=%s", (int(expense_id),))
            row = fetchone(cur)
            return _to_expense(row) if row else None

    def list(
        self,
        *,
        cash_box_id: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
        limit: Optional[int] = None,
    ) -> Sequence[Expense]:
        where = []
        params: list = []
        if cash_box_id is not None:
            where.append("cash_box_id=%s")
            params.append(int(cash_box_id))
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        sql = _SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, expense_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_expense(r) for r in fetchall(cur)]

    def count_by_status(self, status: ApprovalStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM expenses WHERE status=%s", (status.value,))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def apply_transition(
        self,
        expense_id: int,
        *,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        actor_id: int,
        reject_reason: Optional[str] = None,
    ) -> bool:
        sql, params = transition_statement(
            table="expenses",
            id_column="expense_id",
            entity_id=expense_id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            reject_reason=reject_reason,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return cur.rowcount > 0
