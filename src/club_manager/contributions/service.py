from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Optional

from ..auth.policy import Action, Principal, require
from ..common import events
from ..common.datetime_utils import now_local
from ..common.periods import Period
from ..common.validators import (
    optional_text,
    require_date,
    require_id,
    require_non_empty,
    require_period,
    require_positive_amount,
)
from ..core.enums import ContributionType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..members.repository import MemberRepository
from .arrears import ArrearsCalculator, member_ref
from .model import (
    ArrearsResult,
    Contribution,
    HistorySummary,
    MemberHistory,
    MemberMonth,
    MonthTotal,
    Payment,
    UnpaidMonths,
)
from .repository import ContributionRepository

logger = logging.getLogger(__name__)


def _parse_type(value: Any) -> ContributionType:
    try:
        return value if isinstance(value, ContributionType) else ContributionType(str(value).upper())
    except ValueError:
        raise ValidationError("Type de cotisation inconnu", field="type")


def _query_period(year: Optional[int], month: Optional[int]) -> Optional[Period]:
    """Both or neither: a year without a month (or the reverse) is refused."""
    if year is None and month is None:
        return None
    if month is None:
        raise ValidationError("Le mois doit accompagner l'année", field="month")
    if year is None:
        raise ValidationError("L'année doit accompagner le mois", field="year")
    return Period(*require_period(year, month))


class ContributionService:
    """Use cases around dues: definitions, payments, arrears and history."""

    def __init__(
        self,
        contributions: ContributionRepository,
        members: MemberRepository,
        *,
        calculator: Optional[ArrearsCalculator] = None,
        bus: Optional[events.EventBus] = None,
        clock=now_local,
    ):
        self._contributions = contributions
        self._members = members
        self._calculator = calculator or ArrearsCalculator()
        self._bus = bus or events.EventBus()
        self._clock = clock

    def current_period(self) -> Period:
        return Period.of(self._clock())

    # -------- Definitions --------
    def list_contributions(self, principal: Principal) -> list[Contribution]:
        require(principal, Action.VIEW_CONTRIBUTIONS)
        return list(self._contributions.list_contributions())

    def get_contribution(self, principal: Principal, contribution_id: int) -> Contribution:
        require(principal, Action.VIEW_CONTRIBUTIONS)
        return self._get(contribution_id)

    def _get(self, contribution_id: int) -> Contribution:
        contribution = self._contributions.get_contribution(int(contribution_id))
        if not contribution:
            raise NotFoundError("Cotisation introuvable")
        return contribution

    def get_monthly(self, principal: Principal) -> Contribution:
        require(principal, Action.VIEW_CONTRIBUTIONS)
        monthly = self._contributions.get_monthly()
        if not monthly:
            raise NotFoundError("Aucune cotisation mensuelle définie")
        return monthly

    def create_contribution(
        self,
        principal: Principal,
        *,
        name: str,
        type: Any,
        amount: Any = None,
        start_date: Any = None,
        end_date: Any = None,
        target_amount: Any = None,
        frequency: Optional[str] = None,
    ) -> Contribution:
        require(principal, Action.MANAGE_CONTRIBUTIONS)
        name = require_non_empty(name, "Nom", field="name")
        kind = _parse_type(type)

        fields: dict[str, Any] = {
            "amount": None,
            "start_date": None,
            "end_date": None,
            "target_amount": None,
            "frequency": optional_text(frequency),
        }
        if kind == ContributionType.MONTHLY:
            if self._contributions.get_monthly():
                raise ConflictError("Une cotisation mensuelle existe déjà")
            fields["amount"] = require_positive_amount(amount, field="amount")
            fields["frequency"] = fields["frequency"] or "MONTHLY"
            if start_date:
                fields["start_date"] = require_date(start_date, "Date de début", field="startDate")
        elif kind == ContributionType.EXCEPTIONAL:
            fields["start_date"] = require_date(start_date, "Date de début", field="startDate")
            fields["end_date"] = require_date(end_date, "Date de fin", field="endDate")
            if fields["end_date"] < fields["start_date"]:
                raise ValidationError("La date de fin doit être postérieure au début", field="endDate")
            if amount not in (None, ""):
                fields["amount"] = require_positive_amount(amount, field="amount")
        else:
            fields["target_amount"] = require_positive_amount(target_amount, "Objectif", field="targetAmount")
            if end_date:
                fields["end_date"] = require_date(end_date, "Date de fin", field="endDate")

        contribution_id = self._contributions.create_contribution(name=name, type=kind, **fields)
        logger.info("contribution %s (%s) created by %s", contribution_id, kind.value, principal.member_id)
        return self._get(contribution_id)

    def update_contribution(self, principal: Principal, contribution_id: int, changes: dict) -> Contribution:
        require(principal, Action.MANAGE_CONTRIBUTIONS)
        contribution = self._get(contribution_id)

        fields: dict[str, Any] = {}
        if "name" in changes:
            fields["name"] = require_non_empty(changes["name"], "Nom", field="name")
        if changes.get("amount") is not None:
            fields["amount"] = require_positive_amount(changes["amount"], field="amount")
        if changes.get("start_date"):
            fields["start_date"] = require_date(changes["start_date"], "Date de début", field="startDate")
        if changes.get("end_date"):
            fields["end_date"] = require_date(changes["end_date"], "Date de fin", field="endDate")
        if changes.get("target_amount") is not None:
            fields["target_amount"] = require_positive_amount(changes["target_amount"], "Objectif", field="targetAmount")

        start = fields.get("start_date", contribution.start_date)
        end = fields.get("end_date", contribution.end_date)
        if start and end and end < start:
            raise ValidationError("La date de fin doit être postérieure au début", field="endDate")

        self._contributions.update_contribution(contribution.contribution_id, **fields)
        return self._get(contribution.contribution_id)

    # -------- Payments --------
    def record_payment(
        self,
        principal: Principal,
        *,
        member_id: int,
        contribution_id: int,
        amount: Any,
        period_year: Any = None,
        period_month: Any = None,
    ) -> Payment:
        """Treasurer/admin records a payment on behalf of a member."""
        require(principal, Action.RECORD_PAYMENT)
        member_id = require_id(member_id, "Membre", field="memberId")
        if not self._members.get_by_id(member_id):
            raise NotFoundError("Membre introuvable")
        return self._record(
            member_id=member_id,
            contribution_id=contribution_id,
            amount=amount,
            period_year=period_year,
            period_month=period_month,
            recorded_by=principal.member_id,
        )

    def record_self_payment(
        self,
        principal: Principal,
        *,
        contribution_id: int,
        amount: Any,
        period_year: Any = None,
        period_month: Any = None,
    ) -> Payment:
        """A member pays for themself; allowed while suspended (regularization)."""
        require(principal, Action.PAY_OWN_DUES)
        return self._record(
            member_id=principal.member_id,
            contribution_id=contribution_id,
            amount=amount,
            period_year=period_year,
            period_month=period_month,
            recorded_by=principal.member_id,
        )

    def _record(
        self,
        *,
        member_id: int,
        contribution_id: int,
        amount: Any,
        period_year: Any,
        period_month: Any,
        recorded_by: Optional[int],
    ) -> Payment:
        contribution = self._get(require_id(contribution_id, "Cotisation", field="contributionId"))
        value = require_positive_amount(amount)

        year: Optional[int] = None
        month: Optional[int] = None
        if contribution.type == ContributionType.MONTHLY:
            if period_year in (None, "") or period_month in (None, ""):
                current = self.current_period()
                period_year = current.year if period_year in (None, "") else period_year
                period_month = current.month if period_month in (None, "") else period_month
            year, month = require_period(period_year, period_month)
        elif period_year not in (None, "") and period_month not in (None, ""):
            year, month = require_period(period_year, period_month)

        payment_id = self._contributions.create_payment(
            member_id=member_id,
            contribution_id=contribution.contribution_id,
            amount=value,
            period_year=year,
            period_month=month,
            recorded_by=recorded_by,
            add_to_received=contribution.type == ContributionType.PROJECT,
        )

        payment = self._contributions.get_payment(payment_id)
        logger.info(
            "payment %s recorded: member=%s contribution=%s amount=%s period=%s-%s",
            payment_id,
            member_id,
            contribution.contribution_id,
            value,
            year,
            month,
        )
        self._bus.publish(
            events.PAYMENT_RECORDED,
            payment_id=payment_id,
            member_id=member_id,
            contribution_id=contribution.contribution_id,
            contribution_name=contribution.name,
            amount=value,
            period_year=year,
            period_month=month,
        )
        return payment

    def list_payments(
        self,
        principal: Principal,
        *,
        member_id: Optional[int] = None,
        contribution_id: Optional[int] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[Payment]:
        if member_id is None or int(member_id) != principal.member_id:
            require(principal, Action.VIEW_CONTRIBUTIONS)
        return list(
            self._contributions.list_payments(
                member_id=member_id,
                contribution_id=contribution_id,
                period_year=year,
                period_month=month,
                limit=limit,
            )
        )

    # -------- Arrears --------
    def get_arrears(self, principal: Principal, *, year: Optional[int] = None, month: Optional[int] = None) -> ArrearsResult:
        require(principal, Action.VIEW_ARREARS)
        return self.compute_arrears(year=year, month=month)

    def compute_arrears(self, *, year: Optional[int] = None, month: Optional[int] = None) -> ArrearsResult:
        period = _query_period(year, month) or self.current_period()

        monthly = self._contributions.get_monthly()
        payments = []
        if monthly:
            payments = self._contributions.list_payments(
                contribution_id=monthly.contribution_id,
                period_year=period.year,
                period_month=period.month,
            )
        return self._calculator.arrears(self._members.list_all(), payments, monthly=monthly, period=period)

    def get_unpaid_months(self, principal: Principal) -> UnpaidMonths:
        return self.unpaid_months_for(principal.member_id)

    def unpaid_months_for(self, member_id: int) -> UnpaidMonths:
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise NotFoundError("Membre introuvable")
        monthly = self._contributions.get_monthly()
        if not monthly:
            return UnpaidMonths(unpaid_months=[], monthly_contribution_id=None)
        payments = self._contributions.list_payments(member_id=member.member_id, contribution_id=monthly.contribution_id)
        unpaid = self._calculator.unpaid_months(member, payments, monthly=monthly, current=self.current_period())
        return UnpaidMonths(unpaid_months=unpaid, monthly_contribution_id=monthly.contribution_id)

    # -------- History --------
    def history_summary(self, principal: Principal, *, year: Optional[int] = None, month: Optional[int] = None) -> HistorySummary:
        require(principal, Action.VIEW_CONTRIBUTIONS)
        period = _query_period(year, month)
        monthly = self._contributions.get_monthly()
        if not monthly:
            return HistorySummary(total_collected=Decimal("0"), by_month=[], monthly_contribution_id=None)
        payments = self._contributions.list_payments(
            contribution_id=monthly.contribution_id,
            period_year=period.year if period else None,
            period_month=period.month if period else None,
        )

        buckets: dict[Period, list[Payment]] = defaultdict(list)
        for p in payments:
            if p.period is not None:
                buckets[p.period].append(p)

        by_month = [
            MonthTotal(
                year=period.year,
                month=period.month,
                total_collected=sum((p.amount for p in rows), Decimal("0")),
                payments_count=len(rows),
            )
            for period, rows in sorted(buckets.items(), reverse=True)
        ]
        total = sum((m.total_collected for m in by_month), Decimal("0"))
        return HistorySummary(total_collected=total, by_month=by_month, monthly_contribution_id=monthly.contribution_id)

    def member_history(self, principal: Principal, member_id: int) -> MemberHistory:
        if int(member_id) != principal.member_id:
            require(principal, Action.VIEW_CONTRIBUTIONS)
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise NotFoundError("Membre introuvable")

        payments = list(self._contributions.list_payments(member_id=member.member_id))
        monthly = self._contributions.get_monthly()

        months: dict[Period, MemberMonth] = {}
        if monthly:
            for p in payments:
                if p.contribution_id != monthly.contribution_id or p.period is None:
                    continue
                prev = months.get(p.period)
                if prev is None:
                    months[p.period] = MemberMonth(year=p.period.year, month=p.period.month, amount=p.amount, paid_at=p.paid_at)
                else:
                    months[p.period] = MemberMonth(
                        year=prev.year,
                        month=prev.month,
                        amount=prev.amount + p.amount,
                        paid_at=max(prev.paid_at, p.paid_at),
                    )

        return MemberHistory(
            member=member_ref(member),
            payments=payments,
            by_month=[months[k] for k in sorted(months, reverse=True)],
            total_paid=sum((p.amount for p in payments), Decimal("0")),
        )
