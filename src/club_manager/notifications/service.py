from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..auth.policy import Action, Principal, require
from ..common import events
from ..common.periods import Period
from ..common.validators import clamp_limit, optional_text, require_id, require_non_empty
from ..contributions.service import ContributionService
from ..core.constants import CURRENCY_LABEL, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT, REACTIVATION_GRACE_HOURS
from ..core.enums import ApprovalStatus, NotificationKind, Role
from ..core.exceptions import NotFoundError
from ..members.repository import MemberRepository
from .model import Notification, NotificationLog, ReminderReport
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


def format_amount(amount: Any) -> str:
    value = Decimal(str(amount or 0))
    whole = int(value) if value == value.to_integral_value() else value
    return f"{whole:,}".replace(",", " ") + f" {CURRENCY_LABEL}"


class NotificationService:
    """In-app notifications, dues reminders and reactions to domain events."""

    def __init__(
        self,
        notifications: NotificationRepository,
        members: MemberRepository,
        contribution_service: ContributionService,
        *,
        grace_hours: int = REACTIVATION_GRACE_HOURS,
    ):
        self._notifications = notifications
        self._members = members
        self._contribution_service = contribution_service
        self._grace_hours = grace_hours

    # -------- Current member --------
    def list(self, principal: Principal, *, limit: Any = None) -> list[Notification]:
        n = clamp_limit(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
        return list(self._notifications.list_for_member(principal.member_id, limit=n))

    def unread_count(self, principal: Principal) -> int:
        return self._notifications.count_unread(principal.member_id)

    def mark_as_read(self, principal: Principal, notification_id: int) -> None:
        if not self._notifications.mark_read(int(notification_id), member_id=principal.member_id):
            raise NotFoundError("Notification introuvable")

    def mark_all_as_read(self, principal: Principal) -> int:
        return self._notifications.mark_all_read(principal.member_id)

    # -------- Reminders --------
    def remind_cotisation(self, principal: Principal, member_id: int, period_label: Optional[str] = None) -> Notification:
        require(principal, Action.SEND_REMINDERS)
        member = self._members.get_by_id(require_id(member_id, "Membre", field="memberId"))
        if not member:
            raise NotFoundError("Membre introuvable")
        label = optional_text(period_label) or self._contribution_service.current_period().label
        message = f"Bonjour {member.first_name}, votre cotisation de {label} n'est pas encore réglée."
        notification_id = self._notifications.create(
            member_id=member.member_id, title="Rappel de cotisation", message=message
        )
        self._notifications.add_logs(
            member_ids=[member.member_id], type=NotificationKind.COTISATION_REMINDER, payload=message
        )
        logger.info("dues reminder for %s sent to member %s by %s", label, member.member_id, principal.member_id)
        notification = self._notifications.get_by_id(notification_id)
        if not notification:
            raise NotFoundError("Notification introuvable")
        return notification

    def remind_all_arrears(
        self,
        principal: Principal,
        *,
        message: str,
        title: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> ReminderReport:
        require(principal, Action.SEND_REMINDERS)
        message = require_non_empty(message, "Message", field="message")
        arrears = self._contribution_service.compute_arrears(year=year, month=month)
        label = Period(arrears.period_year, arrears.period_month).label
        member_ids = [m.member_id for m in arrears.members]
        sent = self._notifications.create_many(
            member_ids=member_ids,
            title=optional_text(title) or f"Cotisation {label}",
            message=message,
        )
        self._notifications.add_logs(member_ids=member_ids, type=NotificationKind.ARREARS_REMINDER, payload=message)
        logger.info("arrears reminder for %s: %s/%s sent by %s", label, sent, arrears.total, principal.member_id)
        return ReminderReport(sent=sent, total=arrears.total, message=f"{sent} rappel(s) envoyé(s) pour {label}")

    # -------- Send log --------
    def list_logs(self, principal: Principal, *, member_id: Any = None, limit: Any = None) -> list[NotificationLog]:
        """Reminders and payment confirmations sent, optionally for one member."""
        require(principal, Action.VIEW_NOTIFICATION_LOGS)
        target = None
        if member_id not in (None, ""):
            target = require_id(member_id, "Membre", field="memberId")
        n = clamp_limit(limit, DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
        return list(self._notifications.list_logs(member_id=target, limit=n))

    # -------- Event subscribers --------
    def subscribe(self, bus: events.EventBus) -> None:
        bus.subscribe(events.EXPENSE_CREATED, self.on_expense_created)
        bus.subscribe(events.EXPENSE_STATUS_CHANGED, self.on_expense_status_changed)
        bus.subscribe(events.TRANSFER_CREATED, self.on_transfer_created)
        bus.subscribe(events.TRANSFER_STATUS_CHANGED, self.on_transfer_status_changed)
        bus.subscribe(events.PAYMENT_RECORDED, self.on_payment_recorded)
        bus.subscribe(events.MEMBER_SUSPENDED, self.on_member_suspended)
        bus.subscribe(events.MEMBER_REACTIVATED, self.on_member_reactivated)

    def _notify_roles(self, roles: Iterable[Role], *, title: str, message: str, exclude: Optional[int] = None) -> int:
        ids = [m.member_id for m in self._members.list_by_roles(roles) if m.member_id != exclude]
        return self._notifications.create_many(member_ids=ids, title=title, message=message)

    def _notify_member(self, member_id: Optional[int], *, title: str, message: str) -> None:
        if member_id is None:
            return
        self._notifications.create(member_id=int(member_id), title=title, message=message)

    def on_expense_created(self, event: events.Event) -> None:
        p = event.payload
        self._notify_roles(
            [Role.TREASURER],
            title="Dépense à valider",
            message=f"Nouvelle dépense de {format_amount(p['amount'])} : {p['description']}",
            exclude=p.get("requested_by"),
        )

    def on_transfer_created(self, event: events.Event) -> None:
        p = event.payload
        self._notify_roles(
            [Role.TREASURER],
            title="Mouvement de caisse à valider",
            message=f"Nouveau mouvement de {format_amount(p['amount'])} à valider",
            exclude=p.get("requested_by"),
        )

    def on_expense_status_changed(self, event: events.Event) -> None:
        self._status_changed(event, what=f"La dépense « {event.payload.get('description')} »")

    def on_transfer_status_changed(self, event: events.Event) -> None:
        self._status_changed(event, what="Le mouvement de caisse")

    def _status_changed(self, event: events.Event, *, what: str) -> None:
        p = event.payload
        status = ApprovalStatus(p["status"])
        amount = format_amount(p["amount"])
        if status == ApprovalStatus.PENDING_COMMISSIONER:
            self._notify_roles(
                [Role.COMMISSIONER],
                title="Validation requise",
                message=f"{what} ({amount}) attend la validation du Commissaire aux comptes",
            )
        elif status == ApprovalStatus.APPROVED:
            self._notify_member(p.get("requested_by"), title="Validé", message=f"{what} ({amount}) a été validé")
        elif status == ApprovalStatus.REJECTED:
            reason = p.get("reject_reason")
            message = f"{what} ({amount}) a été rejeté"
            if reason:
                message += f" : {reason}"
            self._notify_member(p.get("requested_by"), title="Rejeté", message=message)

    def on_payment_recorded(self, event: events.Event) -> None:
        p = event.payload
        message = f"Paiement de {format_amount(p['amount'])} reçu pour {p.get('contribution_name') or 'la cotisation'}"
        if p.get("period_year") and p.get("period_month"):
            message += f" ({Period(p['period_year'], p['period_month']).label})"
        self._notify_member(p["member_id"], title="Paiement enregistré", message=message)
        self._notifications.add_logs(
            member_ids=[int(p["member_id"])], type=NotificationKind.PAYMENT_CONFIRMATION, payload=message
        )

    def on_member_suspended(self, event: events.Event) -> None:
        self._notify_member(
            event.payload["member_id"],
            title="Compte suspendu",
            message="Votre compte est suspendu : cotisation non à jour. Régularisez vos mois impayés.",
        )

    def on_member_reactivated(self, event: events.Event) -> None:
        self._notify_member(
            event.payload["member_id"],
            title="Compte réactivé",
            message=f"Votre compte est réactivé temporairement : régularisez votre cotisation sous {self._grace_hours} h.",
        )
