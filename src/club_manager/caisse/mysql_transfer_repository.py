from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ApprovalStatus, TransferType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import CashBoxTransfer
from .mysql_approval import transition_statement
from .repository import TransferRepository

_SELECT = """
    SELECT transfer_id, type, amount, description, status, from_cash_box_id, to_cash_box_id,
           requested_by, treasurer_approved_by, treasurer_approved_at,
           commissioner_approved_by, commissioner_approved_at,
           rejected_by, rejected_at, reject_reason, created_at, updated_at
    FROM cash_box_transfers
"""


def _to_transfer(r: dict) -> CashBoxTransfer:
    return CashBoxTransfer(
        transfer_id=int(r["transfer_id"]),
        type=TransferType(r["type"]),
        amount=as_decimal(r["amount"]),
        status=ApprovalStatus(r["status"]),
        requested_by=int(r["requested_by"]),
        created_at=r["created_at"],
        description=r.get("description"),
        from_cash_box_id=r.get("from_cash_box_id"),
        to_cash_box_id=r.get("to_cash_box_id"),
        treasurer_approved_by=r.get("treasurer_approved_by"),
        treasurer_approved_at=r.get("treasurer_approved_at"),
        commissioner_approved_by=r.get("commissioner_approved_by"),
        commissioner_approved_at=r.get("commissioner_approved_at"),
        rejected_by=r.get("rejected_by"),
        rejected_at=r.get("rejected_at"),
        reject_reason=r.get("reject_reason"),
        updated_at=r.get("updated_at"),
    )


class MySQLTransferRepository(TransferRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        type: TransferType,
        amount: Decimal,
        description: Optional[str],
        from_cash_box_id: Optional[int],
        to_cash_box_id: Optional[int],
        requested_by: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO cash_box_transfers(
                    type, amount, description, from_cash_box_id, to_cash_box_id, requested_by, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    type.value,
                    amount,
                    description,
                    from_cash_box_id,
                    to_cash_box_id,
                    int(requested_by),
                    ApprovalStatus.PENDING_TREASURER.value,
                ),
            )
            return int(cur.lastrowid)

    def get_by_id(self, transfer_id: int) -> Optional[CashBoxTransfer]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE transfer_id=%s", (int(transfer_id),))
            row = fetchone(cur)
            return _to_transfer(row) if row else None

    def list(
        self,
        *,
        cash_box_id: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
        limit: Optional[int] = None,
    ) -> Sequence[CashBoxTransfer]:
        where = []
        params: list = []
        if cash_box_id is not None:
            where.append("(from_cash_box_id=%s OR to_cash_box_id=%s)")
            params.extend([int(cash_box_id), int(cash_box_id)])
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        sql = _SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY created_at DESC, transfer_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_transfer(r) for r in fetchall(cur)]

    def count_by_status(self, status: ApprovalStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM cash_box_transfers WHERE status=%s", (status.value,))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def apply_transition(
        self,
        transfer_id: int,
        *,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        actor_id: int,
        reject_reason: Optional[str] = None,
    ) -> bool:
        sql, params = transition_statement(
            table="cash_box_transfers",
            id_column="transfer_id",
            entity_id=transfer_id,
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            reject_reason=reject_reason,
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return cur.rowcount > 0
