from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import ApprovalStatus, TransferType
from .model import CashBox, CashBoxTransfer, Expense


class CashBoxRepository(Protocol):
    def list_all(self) -> Sequence[CashBox]:
        raise NotImplementedError

    def get_by_id(self, cash_box_id: int) -> Optional[CashBox]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str], order: int, is_default: bool) -> int:
        raise NotImplementedError

    def update(self, cash_box_id: int, **fields) -> bool:
        raise NotImplementedError

    def set_default(self, cash_box_id: int) -> bool:
        """Make this box the only default one."""

        raise NotImplementedError

    def delete_and_reassign(self, cash_box_id: int, *, default_id: int) -> bool:
        """Delete a box, pointing its expenses and transfers at default_id (one transaction).

        Raises ConflictError, with nothing applied, when the box is gone or is the default.
        """

        raise NotImplementedError


class ExpenseRepository(Protocol):
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
        raise NotImplementedError

    def get_by_id(self, expense_id: int) -> Optional[Expense]:
        raise NotImplementedError

    def list(
        self,
        *,
        cash_box_id: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
        limit: Optional[int] = None,
    ) -> Sequence[Expense]:
        raise NotImplementedError

    def count_by_status(self, status: ApprovalStatus) -> int:
        raise NotImplementedError

    def apply_transition(
        self,
        expense_id: int,
        *,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        actor_id: int,
        reject_reason: Optional[str] = None,
    ) -> bool:
        """Atomic check-and-set: update only if the row is still in from_status.

        Returns False when another request already moved it.
        """

        raise NotImplementedError


class TransferRepository(Protocol):
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
        raise NotImplementedError

    def get_by_id(self, transfer_id: int) -> Optional[CashBoxTransfer]:
        raise NotImplementedError

    def list(
        self,
        *,
        cash_box_id: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
        limit: Optional[int] = None,
    ) -> Sequence[CashBoxTransfer]:
        raise NotImplementedError

    def count_by_status(self, status: ApprovalStatus) -> int:
        raise NotImplementedError

    def apply_transition(
        self,
        transfer_id: int,
        *,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        actor_id: int,
        reject_reason: Optional[str] = None,
    ) -> bool:
        raise NotImplementedError
