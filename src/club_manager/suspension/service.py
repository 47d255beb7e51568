from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..auth.policy import Action, Principal, require
from ..common import events
from ..common.datetime_utils import now_local
from ..common.periods import Period
from ..contributions.arrears import ArrearsCalculator
from ..contributions.repository import ContributionRepository
from ..core.constants import DUES_DAY, REACTIVATION_GRACE_HOURS
from ..core.exceptions import ConflictError, NotFoundError
from ..members.repository import MemberRepository
from ..members.service import MemberService
from . import policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuspensionReport:
    applied: int
    cleared: int
    period_year: int
    period_month: int


class SuspensionService:
    """Runs the suspension policy over members (scheduled job, admin trigger, payments)."""

    def __init__(
        self,
        members: MemberRepository,
        contributions: ContributionRepository,
        member_service: MemberService,
        *,
        calculator: Optional[ArrearsCalculator] = None,
        dues_day: int = DUES_DAY,
        grace_hours: int = REACTIVATION_GRACE_HOURS,
        clock=now_local,
    ):
        self._members = members
        self._contributions = contributions
        self._member_service = member_service
        self._calculator = calculator or ArrearsCalculator()
        self._dues_day = dues_day
        self._grace_hours = grace_hours
        self._clock = clock

    def apply_suspensions_for(self, principal: Principal) -> SuspensionReport:
        require(principal, Action.APPLY_SUSPENSIONS)
        return self.apply_suspensions()

    def apply_suspensions(self, now: Optional[datetime] = None) -> SuspensionReport:
        now = now or self._clock()
        current = Period.of(now)
        monthly = self._contributions.get_monthly()
        if not monthly:
            logger.info("no monthly contribution defined, nothing to apply")
            return SuspensionReport(applied=0, cleared=0, period_year=current.year, period_month=current.month)

        payments = list(self._contributions.list_payments(contribution_id=monthly.contribution_id))
        applied = 0
        cleared = 0
        for member in self._members.list_all():
            unpaid = self._calculator.unpaid_months(member, payments, monthly=monthly, current=current)
            decision = policy.evaluate(
                member, unpaid, now, dues_day=self._dues_day, grace_hours=self._grace_hours
            )
            if decision == policy.Decision.SUSPEND:
                details = "Mois impayés : " + ", ".join(p.label for p in unpaid)
                try:
                    self._member_service.suspend_member(member.member_id, details=details)
                except ConflictError:
                    # Suspended concurrently by another run or an admin.
                    continue
                applied += 1
            elif decision == policy.Decision.RESTORE:
                self._member_service.end_grace(member.member_id)
                cleared += 1

        logger.info(
            "suspensions applied for %s: %s suspended, %s grace windows cleared",
            current.label,
            applied,
            cleared,
        )
        return SuspensionReport(applied=applied, cleared=cleared, period_year=current.year, period_month=current.month)

    def reconcile_member(self, member_id: int, now: Optional[datetime] = None) -> policy.Decision:
        """Close a grace window as soon as the member has nothing left unpaid."""
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise NotFoundError("Membre introuvable")
        if member.is_suspended or member.reactivated_at is None:
            return policy.Decision.NONE

        monthly = self._contributions.get_monthly()
        if not monthly:
            return policy.Decision.NONE
        now = now or self._clock()
        payments = self._contributions.list_payments(member_id=member.member_id, contribution_id=monthly.contribution_id)
        unpaid = self._calculator.unpaid_months(member, payments, monthly=monthly, current=Period.of(now))
        if unpaid:
            return policy.Decision.NONE
        self._member_service.end_grace(member.member_id)
        return policy.Decision.RESTORE

    def on_payment_recorded(self, event: events.Event) -> None:
        self.reconcile_member(event.payload["member_id"])
