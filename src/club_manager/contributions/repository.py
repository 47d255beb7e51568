from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import ContributionType
from .model import Contribution, Payment


class ContributionRepository(Protocol):
    # Contributions
    def list_contributions(self) -> Sequence[Contribution]:
        raise NotImplementedError

    def get_contribution(self, contribution_id: int) -> Optional[Contribution]:
        raise NotImplementedError

    def get_monthly(self) -> Optional[Contribution]:
        """The authoritative MONTHLY contribution, if one exists."""

        raise NotImplementedError

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
        raise NotImplementedError

    def update_contribution(self, contribution_id: int, **fields) -> bool:
        raise NotImplementedError

    # Payments
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
        """Insert a payment; with add_to_received, bump the project total in the same transaction."""

        raise NotImplementedError

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        raise NotImplementedError

    def list_payments(
        self,
        *,
        member_id: Optional[int] = None,
        contribution_id: Optional[int] = None,
        period_year: Optional[int] = None,
        period_month: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Sequence[Payment]:
        """Newest first. ``limit=None`` returns every matching row."""

        raise NotImplementedError
