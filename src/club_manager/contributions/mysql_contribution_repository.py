from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import ContributionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import Contribution, Payment
from .repository import ContributionRepository

_CONTRIBUTION_SELECT = """
    SELECT c.contribution_id, c.name, c.type, c.amount, c.start_date, c.end_date,
           c.target_amount, c.received_amount, c.frequency, c.created_at, c.updated_at,
           (SELECT COUNT(*) FROM payments p WHERE p.contribution_id = c.contribution_id) AS payments_count
    FROM contributions c
"""

_PAYMENT_SELECT = """
    SELECT payment_id, member_id, contribution_id, amount, paid_at,
           period_year, period_month, recorded_by
    FROM payments
"""

_UPDATABLE = {"name", "amount", "start_date", "end_date", "target_amount", "frequency"}


def _to_contribution(r: dict) -> Contribution:
    return Contribution(
        contribution_id=int(r["contribution_id"]),
        name=r["name"],
        type=ContributionType(r["type"]),
        amount=as_decimal(r.get("amount")),
        start_date=r.get("start_date"),
        end_date=r.get("end_date"),
        target_amount=as_decimal(r.get("target_amount")),
        received_amount=as_decimal(r.get("received_amount")),
        frequency=r.get("frequency"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        payments_count=int(r.get("payments_count") or 0),
    )


def _to_payment(r: dict) -> Payment:
    return Payment(
        payment_id=int(r["payment_id"]),
        member_id=int(r["member_id"]),
        contribution_id=int(r["contribution_id"]),
        amount=as_decimal(r["amount"]),
        paid_at=r["paid_at"],
        period_year=r.get("period_year"),
        period_month=r.get("period_month"),
        recorded_by=r.get("recorded_by"),
    )


class MySQLContributionRepository(ContributionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Contributions --------
    def list_contributions(self) -> Sequence[Contribution]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_CONTRIBUTION_SELECT + " ORDER BY c.created_at DESC, c.contribution_id DESC")
            return [_to_contribution(r) for r in fetchall(cur)]

    def get_contribution(self, contribution_id: int) -> Optional[Contribution]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_CONTRIBUTION_SELECT + " WHERE c.contribution_id=%s", (int(contribution_id),))
            row = fetchone(cur)
            return _to_contribution(row) if row else None

    def get_monthly(self) -> Optional[Contribution]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _CONTRIBUTION_SELECT + " WHERE c.type=%s ORDER BY c.contribution_id LIMIT 1",
                (ContributionType.MONTHLY.value,),
            )
            row = fetchone(cur)
            return _to_contribution(row) if row else None

    def create_contribution(
        self,
        *,
        name: str,
        type: ContributionType,
        amount: Optional[Decimal],
        start_date: Optional[date],
        end_date: Optional[date],
        target_amount: Optional[Decimal],
        frequency: Optional[str],
    ) -> int:
        received = Decimal("0") if type == ContributionType.PROJECT else None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO contributions(
                    name, type, amount, start_date, end_date, target_amount, received_amount, frequency
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (name, type.value, amount, start_date, end_date, target_amount, received, frequency),
            )
            return int(cur.lastrowid)

    def update_contribution(self, contribution_id: int, **fields) -> bool:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported contribution columns: {sorted(unknown)}")
        if not fields:
            return self.get_contribution(contribution_id) is not None

        assignments = ", ".join(f"{col}=%s" for col in fields)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE contributions SET {assignments}, updated_at=NOW() WHERE contribution_id=%s",
                (*fields.values(), int(contribution_id)),
            )
            return cur.rowcount > 0

    # -------- Payments --------
    def create_payment(
        self,
        *,
        member_id: int,
        contribution_id: int,
        amount: Decimal,
        period_year: Optional[int],
        period_month: Optional[int],
        recorded_by: Optional[int],
        add_to_received: bool = False,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO payments(member_id, contribution_id, amount, period_year, period_month, recorded_by)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(member_id), int(contribution_id), amount, period_year, period_month, recorded_by),
            )
            payment_id = int(cur.lastrowid)
            if add_to_received:
                cur.execute(
                    """
                    UPDATE contributions
                    SET received_amount = COALESCE(received_amount, 0) + %s, updated_at=NOW()
                    WHERE contribution_id=%s
                    """,
                    (amount, int(contribution_id)),
                )
            return payment_id

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_PAYMENT_SELECT + " WHERE payment_id=%s", (int(payment_id),))
            row = fetchone(cur)
            return _to_payment(row) if row else None

    def list_payments(
        self,
        *,
        member_id: Optional[int] = None,
        contribution_id: Optional[int] = None,
        period_year: Optional[int] = None,
        period_month: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Sequence[Payment]:
        where = []
        params: list = []
        if member_id is not None:
            where.append("member_id=%s")
            params.append(int(member_id))
        if contribution_id is not None:
            where.append("contribution_id=%s")
            params.append(int(contribution_id))
        if period_year is not None:
            where.append("period_year=%s")
            params.append(int(period_year))
        if period_month is not None:
            where.append("period_month=%s")
            params.append(int(period_month))

        sql = _PAYMENT_SELECT
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY paid_at DESC, payment_id DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_payment(r) for r in fetchall(cur)]
