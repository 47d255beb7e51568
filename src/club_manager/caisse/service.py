from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..auth.policy import Action, Principal, require
from ..common import events
from ..common.datetime_utils import now_local
from ..common.validators import (
    optional_text,
    require_date,
    require_id,
    require_max_length,
    require_non_empty,
    require_positive_amount,
)
from ..contributions.repository import ContributionRepository
from ..core.constants import REJECT_REASON_MAX_LENGTH
from ..core.enums import ApprovalStatus, TransferType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from . import ledger, workflow
from .model import CaisseSummary, CashBox, CashBoxTransfer, Expense, LedgerEntry, PendingCount
from .repository import CashBoxRepository, ExpenseRepository, TransferRepository

logger = logging.getLogger(__name__)


def _parse_transfer_type(value: Any) -> TransferType:
    try:
        return value if isinstance(value, TransferType) else TransferType(str(value).upper())
    except ValueError:
        raise ValidationError("Type de mouvement inconnu (ALLOCATION ou WITHDRAWAL)", field="type")


def _parse_status(value: Any) -> Optional[ApprovalStatus]:
    if value in (None, ""):
        return None
    try:
        return value if isinstance(value, ApprovalStatus) else ApprovalStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Statut inconnu", field="status")


class CaisseService:
    """Cash boxes, expenses, transfers and the derived cash book."""

    def __init__(
        self,
        boxes: CashBoxRepository,
        expenses: ExpenseRepository,
        transfers: TransferRepository,
        contributions: ContributionRepository,
        *,
        bus: Optional[events.EventBus] = None,
        clock=now_local,
    ):
        self._boxes = boxes
        self._expenses = expenses
        self._transfers = transfers
        self._contributions = contributions
        self._bus = bus or events.EventBus()
        self._clock = clock

    # -------- Cash book --------
    def build_ledger(self) -> list[LedgerEntry]:
        boxes = list(self._boxes.list_all())
        contributions = self._contributions.list_contributions()
        return ledger.build_ledger(
            self._contributions.list_payments(),
            self._expenses.list(status=ApprovalStatus.APPROVED),
            self._transfers.list(status=ApprovalStatus.APPROVED),
            boxes,
            contribution_names={c.contribution_id: c.name for c in contributions},
        )

    def summary(self, principal: Principal) -> CaisseSummary:
        require(principal, Action.VIEW_CAISSE)
        boxes = list(self._boxes.list_all())
        entries = self.build_ledger()
        result = ledger.aggregate(entries, boxes)
        return CaisseSummary(
            boxes=result.boxes,
            default_cash_box_id=result.default_cash_box_id,
            global_totals=result.global_totals,
            last_updated=self._clock(),
        )

    def ledger(self, principal: Principal, *, limit: Optional[int] = None) -> list[LedgerEntry]:
        require(principal, Action.VIEW_CAISSE)
        entries = self.build_ledger()
        if limit is not None:
            entries = entries[: int(limit)]
        return entries

    def pending_count(self, principal: Principal) -> PendingCount:
        require(principal, Action.VIEW_PENDING_APPROVALS)
        return PendingCount(
            pending_treasurer=self._expenses.count_by_status(ApprovalStatus.PENDING_TREASURER)
            + self._transfers.count_by_status(ApprovalStatus.PENDING_TREASURER),
            pending_commissioner=self._expenses.count_by_status(ApprovalStatus.PENDING_COMMISSIONER)
            + self._transfers.count_by_status(ApprovalStatus.PENDING_COMMISSIONER),
        )

    # -------- Cash boxes --------
    def list_boxes(self, principal: Principal) -> list[CashBox]:
        require(principal, Action.VIEW_CAISSE)
        return list(self._boxes.list_all())

    def _get_box(self, cash_box_id: Any) -> CashBox:
        box = self._boxes.get_by_id(require_id(cash_box_id, "Caisse", field="cashBoxId"))
        if not box:
            raise NotFoundError("Caisse introuvable")
        return box

    def create_box(
        self,
        principal: Principal,
        *,
        name: str,
        description: Optional[str] = None,
        order: Any = None,
        is_default: bool = False,
    ) -> CashBox:
        require(principal, Action.MANAGE_CASH_BOXES)
        name = require_non_empty(name, "Nom de la caisse", field="name")
        existing = list(self._boxes.list_all())
        if order in (None, ""):
            order = max((b.order for b in existing), default=-1) + 1
        try:
            order = int(order)
        except (TypeError, ValueError):
            raise ValidationError("Ordre invalide", field="order")

        # The first box is always the default one.
        make_default = bool(is_default) or not existing
        box_id = self._boxes.create(
            name=name,
            description=optional_text(description),
            order=order,
            is_default=make_default,
        )
        logger.info("cash box %s created by %s (default=%s)", box_id, principal.member_id, make_default)
        return self._get_box(box_id)

    def update_box(self, principal: Principal, cash_box_id: int, changes: dict) -> CashBox:
        require(principal, Action.MANAGE_CASH_BOXES)
        box = self._get_box(cash_box_id)

        fields: dict[str, Any] = {}
        if "name" in changes:
            fields["name"] = require_non_empty(changes["name"], "Nom de la caisse", field="name")
        if "description" in changes:
            fields["description"] = optional_text(changes["description"])
        if changes.get("order") not in (None, ""):
            try:
                fields["order"] = int(changes["order"])
            except (TypeError, ValueError):
                raise ValidationError("Ordre invalide", field="order")

        self._boxes.update(box.cash_box_id, **fields)
        if changes.get("is_default") and not box.is_default:
            self._boxes.set_default(box.cash_box_id)
            logger.info("cash box %s is now the default box", box.cash_box_id)
        return self._get_box(box.cash_box_id)

    def delete_box(self, principal: Principal, cash_box_id: int) -> None:
        require(principal, Action.MANAGE_CASH_BOXES)
        box = self._get_box(cash_box_id)
        default_id = ledger.default_box_id(list(self._boxes.list_all()))
        if box.is_default or box.cash_box_id == default_id:
            raise ConflictError("La caisse par défaut ne peut pas être supprimée")
        self._boxes.delete_and_reassign(box.cash_box_id, default_id=default_id)
        logger.info("cash box %s deleted, references moved to %s", box.cash_box_id, default_id)

    # -------- Expenses --------
    def list_expenses(
        self,
        principal: Principal,
        *,
        cash_box_id: Optional[int] = None,
        status: Any = None,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        require(principal, Action.VIEW_CAISSE)
        return list(self._expenses.list(cash_box_id=cash_box_id, status=_parse_status(status), limit=limit))

    def get_expense(self, principal: Principal, expense_id: int) -> Expense:
        require(principal, Action.VIEW_CAISSE)
        return self._get_expense(expense_id)

    def _get_expense(self, expense_id: int) -> Expense:
        expense = self._expenses.get_by_id(require_id(expense_id, "Dépense", field="expenseId"))
        if not expense:
            raise NotFoundError("Dépense introuvable")
        return expense

    def create_expense(
        self,
        principal: Principal,
        *,
        amount: Any,
        description: str,
        expense_date: Any,
        cash_box_id: Any = None,
        beneficiary: Optional[str] = None,
    ) -> Expense:
        require(principal, Action.CREATE_EXPENSE)
        value = require_positive_amount(amount)
        description = require_non_empty(description, "Description", field="description")
        when = require_date(expense_date, "Date de la dépense", field="expenseDate")
        box_id = None
        if cash_box_id not in (None, ""):
            box_id = self._get_box(cash_box_id).cash_box_id

        expense_id = self._expenses.create(
            amount=value,
            description=description,
            expense_date=when,
            cash_box_id=box_id,
            beneficiary=optional_text(beneficiary),
            requested_by=principal.member_id,
        )
        logger.info("expense %s created by %s: %s", expense_id, principal.member_id, value)
        expense = self._get_expense(expense_id)
        self._bus.publish(
            events.EXPENSE_CREATED,
            expense_id=expense.expense_id,
            amount=expense.amount,
            description=expense.description,
            requested_by=expense.requested_by,
        )
        return expense

    def validate_expense_treasurer(self, principal: Principal, expense_id: int) -> Expense:
        return self._transition_expense(principal, expense_id, workflow.Step.VALIDATE_TREASURER)

    def validate_expense_commissioner(self, principal: Principal, expense_id: int) -> Expense:
        return self._transition_expense(principal, expense_id, workflow.Step.VALIDATE_COMMISSIONER)

    def reject_expense(self, principal: Principal, expense_id: int, reason: Optional[str] = None) -> Expense:
        return self._transition_expense(principal, expense_id, workflow.Step.REJECT, reason)

    def _transition_expense(
        self, principal: Principal, expense_id: int, step: workflow.Step, reason: Optional[str] = None
    ) -> Expense:
        expense = self._get_expense(expense_id)
        self._apply(
            principal,
            step,
            current=expense.status,
            entity_id=expense.expense_id,
            apply=self._expenses.apply_transition,
            reason=reason,
        )
        updated = self._get_expense(expense.expense_id)
        self._bus.publish(
            events.EXPENSE_STATUS_CHANGED,
            expense_id=updated.expense_id,
            status=updated.status,
            amount=updated.amount,
            description=updated.description,
            requested_by=updated.requested_by,
            actor_id=principal.member_id,
            reject_reason=updated.reject_reason,
        )
        return updated

    # -------- Transfers --------
    def list_transfers(
        self,
        principal: Principal,
        *,
        cash_box_id: Optional[int] = None,
        status: Any = None,
        limit: Optional[int] = None,
    ) -> list[CashBoxTransfer]:
        require(principal, Action.VIEW_CAISSE)
        return list(self._transfers.list(cash_box_id=cash_box_id, status=_parse_status(status), limit=limit))

    def get_transfer(self, principal: Principal, transfer_id: int) -> CashBoxTransfer:
        require(principal, Action.VIEW_CAISSE)
        return self._get_transfer(transfer_id)

    def _get_transfer(self, transfer_id: int) -> CashBoxTransfer:
        transfer = self._transfers.get_by_id(require_id(transfer_id, "Mouvement", field="transferId"))
        if not transfer:
            raise NotFoundError("Mouvement introuvable")
        return transfer

    def create_transfer(
        self,
        principal: Principal,
        *,
        type: Any,
        cash_box_id: Any,
        amount: Any,
        description: Optional[str] = None,
    ) -> CashBoxTransfer:
        """ALLOCATION moves money into the box, WITHDRAWAL takes it out."""
        require(principal, Action.CREATE_TRANSFER)
        kind = _parse_transfer_type(type)
        if cash_box_id in (None, ""):
            raise ValidationError("La caisse est requise", field="cashBoxId")
        box = self._get_box(cash_box_id)
        value = require_positive_amount(amount)

        transfer_id = self._transfers.create(
            type=kind,
            amount=value,
            description=optional_text(description),
            from_cash_box_id=box.cash_box_id if kind == TransferType.WITHDRAWAL else None,
            to_cash_box_id=box.cash_box_id if kind == TransferType.ALLOCATION else None,
            requested_by=principal.member_id,
        )
        logger.info("transfer %s (%s) created by %s: %s", transfer_id, kind.value, principal.member_id, value)
        transfer = self._get_transfer(transfer_id)
        self._bus.publish(
            events.TRANSFER_CREATED,
            transfer_id=transfer.transfer_id,
            type=transfer.type,
            amount=transfer.amount,
            description=transfer.description,
            requested_by=transfer.requested_by,
        )
        return transfer

    def validate_transfer_treasurer(self, principal: Principal, transfer_id: int) -> CashBoxTransfer:
        return self._transition_transfer(principal, transfer_id, workflow.Step.VALIDATE_TREASURER)

    def validate_transfer_commissioner(self, principal: Principal, transfer_id: int) -> CashBoxTransfer:
        return self._transition_transfer(principal, transfer_id, workflow.Step.VALIDATE_COMMISSIONER)

    def reject_transfer(self, principal: Principal, transfer_id: int, reason: Optional[str] = None) -> CashBoxTransfer:
        return self._transition_transfer(principal, transfer_id, workflow.Step.REJECT, reason)

    def _transition_transfer(
        self, principal: Principal, transfer_id: int, step: workflow.Step, reason: Optional[str] = None
    ) -> CashBoxTransfer:
        transfer = self._get_transfer(transfer_id)
        self._apply(
            principal,
            step,
            current=transfer.status,
            entity_id=transfer.transfer_id,
            apply=self._transfers.apply_transition,
            reason=reason,
        )
        updated = self._get_transfer(transfer.transfer_id)
        self._bus.publish(
            events.TRANSFER_STATUS_CHANGED,
            transfer_id=updated.transfer_id,
            type=updated.type,
            status=updated.status,
            amount=updated.amount,
            description=updated.description,
            requested_by=updated.requested_by,
            actor_id=principal.member_id,
            reject_reason=updated.reject_reason,
        )
        return updated

    # -------- Shared transition path --------
    def _apply(
        self,
        principal: Principal,
        step: workflow.Step,
        *,
        current: ApprovalStatus,
        entity_id: int,
        apply: Callable[..., bool],
        reason: Optional[str],
    ) -> workflow.Transition:
        transition = workflow.plan(principal, current, step)
        reject_reason = None
        if step == workflow.Step.REJECT:
            reject_reason = require_max_length(
                optional_text(reason), "Motif", REJECT_REASON_MAX_LENGTH, field="motif"
            )

        ok = apply(
            entity_id,
            from_status=transition.from_status,
            to_status=transition.to_status,
            actor_id=principal.member_id,
            reject_reason=reject_reason,
        )
        if not ok:
            # Another request moved the row between our read and the update.
            logger.info("transition %s on %s lost the race (was %s)", step.value, entity_id, current.value)
            raise ConflictError("Cet élément a déjà été traité par une autre action")

        logger.info(
            "%s: %s -> %s on %s by %s",
            step.value,
            transition.from_status.value,
            transition.to_status.value,
            entity_id,
            principal.member_id,
        )
        return transition
