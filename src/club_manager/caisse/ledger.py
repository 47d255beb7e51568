"""Cash book projection and balance aggregation.

Both functions are pure: they take immutable collections and return new
values, so the cash book can be rebuilt on every request.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import as_datetime
from ..contributions.model import Payment
from ..core.enums import ApprovalStatus, LedgerDirection, LedgerKind, TransferType
from .model import CaisseSummary, CashBox, CashBoxSummary, CashBoxTransfer, Expense, LedgerEntry, Totals

ZERO = Decimal("0")


def default_box_id(boxes: Sequence[CashBox]) -> Optional[int]:
    for box in boxes:
        if box.is_default:
            return box.cash_box_id
    if boxes:
        first = min(boxes, key=lambda b: (b.order, b.cash_box_id))
        return first.cash_box_id
    return None


def resolve_box(cash_box_id: Optional[int], known: set[int], default_id: Optional[int]) -> Optional[int]:
    """Unknown, deleted or missing boxes fall back to the default box."""
    if cash_box_id is not None and cash_box_id in known:
        return cash_box_id
    return default_id


def build_ledger(
    payments: Iterable[Payment],
    expenses: Iterable[Expense],
    transfers: Iterable[CashBoxTransfer],
    boxes: Sequence[CashBox],
    *,
    contribution_names: Optional[Mapping[int, str]] = None,
) -> list[LedgerEntry]:
    """Unify payments, approved allocations, approved expenses and approved
    withdrawals into one cash book, newest first."""
    known = {b.cash_box_id for b in boxes}
    default_id = default_box_id(boxes)
    names = contribution_names or {}
    entries: list[LedgerEntry] = []

    for p in payments:
        entries.append(
            LedgerEntry(
                direction=LedgerDirection.ENTREE,
                kind=LedgerKind.PAYMENT,
                entry_id=p.payment_id,
                date=as_datetime(p.paid_at),
                amount=p.amount,
                cash_box_id=default_id,
                label=names.get(p.contribution_id, "Cotisation"),
                member_id=p.member_id,
                contribution_id=p.contribution_id,
                period_year=p.period_year,
                period_month=p.period_month,
            )
        )

    for e in expenses:
        if e.status != ApprovalStatus.APPROVED:
            continue
        entries.append(
            LedgerEntry(
                direction=LedgerDirection.SORTIE,
                kind=LedgerKind.EXPENSE,
                entry_id=e.expense_id,
                date=as_datetime(e.expense_date),
                amount=e.amount,
                cash_box_id=resolve_box(e.cash_box_id, known, default_id),
                label=e.description,
                description=e.description,
                beneficiary=e.beneficiary,
                requested_by=e.requested_by,
                treasurer_approved_by=e.treasurer_approved_by,
                commissioner_approved_by=e.commissioner_approved_by,
            )
        )

    for t in transfers:
        if t.status != ApprovalStatus.APPROVED:
            continue
        allocation = t.type == TransferType.ALLOCATION
        entries.append(
            LedgerEntry(
                direction=LedgerDirection.ENTREE if allocation else LedgerDirection.SORTIE,
                kind=LedgerKind.ALLOCATION if allocation else LedgerKind.WITHDRAWAL,
                entry_id=t.transfer_id,
                date=as_datetime(t.commissioner_approved_at or t.created_at),
                amount=t.amount,
                cash_box_id=resolve_box(t.cash_box_id, known, default_id),
                label=t.description or ("Allocation" if allocation else "Retrait"),
                description=t.description,
                requested_by=t.requested_by,
                treasurer_approved_by=t.treasurer_approved_by,
                commissioner_approved_by=t.commissioner_approved_by,
            )
        )

    entries.sort(key=lambda x: (x.date, x.kind.value, x.entry_id), reverse=True)
    return entries


def aggregate(entries: Iterable[LedgerEntry], boxes: Sequence[CashBox]) -> CaisseSummary:
    """Per-box and global {balance, total_entries, total_exits}."""
    known = {b.cash_box_id for b in boxes}
    default_id = default_box_id(boxes)
    entries_by_box: dict[Optional[int], Decimal] = {}
    exits_by_box: dict[Optional[int], Decimal] = {}
    total_in = ZERO
    total_out = ZERO

    for entry in entries:
        box_id = resolve_box(entry.cash_box_id, known, default_id)
        if entry.direction == LedgerDirection.ENTREE:
            entries_by_box[box_id] = entries_by_box.get(box_id, ZERO) + entry.amount
            total_in += entry.amount
        else:
            exits_by_box[box_id] = exits_by_box.get(box_id, ZERO) + entry.amount
            total_out += entry.amount

    summaries = []
    for box in sorted(boxes, key=lambda b: (b.order, b.cash_box_id)):
        box_in = entries_by_box.get(box.cash_box_id, ZERO)
        box_out = exits_by_box.get(box.cash_box_id, ZERO)
        summaries.append(
            CashBoxSummary(
                cash_box_id=box.cash_box_id,
                name=box.name,
                description=box.description,
                order=box.order,
                is_default=box.cash_box_id == default_id,
                balance=box_in - box_out,
                total_entries=box_in,
                total_exits=box_out,
            )
        )

    return CaisseSummary(
        boxes=summaries,
        default_cash_box_id=default_id,
        global_totals=Totals(balance=total_in - total_out, total_entries=total_in, total_exits=total_out),
    )
