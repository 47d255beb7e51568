"""Capability policy: which role may perform which action.

Every service checks permissions through ``require`` instead of comparing
roles inline, so the whole authorization surface is this one table.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AccountSuspendedError, AuthorizationError


class Action(str, Enum):
    VIEW_CAISSE = "VIEW_CAISSE"
    VIEW_PENDING_APPROVALS = "VIEW_PENDING_APPROVALS"
    CREATE_EXPENSE = "CREATE_EXPENSE"
    CREATE_TRANSFER = "CREATE_TRANSFER"
    VALIDATE_TREASURER = "VALIDATE_TREASURER"
    VALIDATE_COMMISSIONER = "VALIDATE_COMMISSIONER"
    MANAGE_CASH_BOXES = "MANAGE_CASH_BOXES"

    VIEW_CONTRIBUTIONS = "VIEW_CONTRIBUTIONS"
    MANAGE_CONTRIBUTIONS = "MANAGE_CONTRIBUTIONS"
    RECORD_PAYMENT = "RECORD_PAYMENT"
    PAY_OWN_DUES = "PAY_OWN_DUES"
    VIEW_ARREARS = "VIEW_ARREARS"
    APPLY_SUSPENSIONS = "APPLY_SUSPENSIONS"

    VIEW_MEMBERS = "VIEW_MEMBERS"
    MANAGE_MEMBERS = "MANAGE_MEMBERS"

    VIEW_REPORTS = "VIEW_REPORTS"
    SEND_REMINDERS = "SEND_REMINDERS"
    VIEW_NOTIFICATION_LOGS = "VIEW_NOTIFICATION_LOGS"

    VIEW_ACTIVITIES = "VIEW_ACTIVITIES"
    PUBLISH_ACTIVITY = "PUBLISH_ACTIVITY"


ALL_ROLES = frozenset(Role)
BUREAU_ROLES = frozenset(
    {
        Role.ADMIN,
        Role.PRESIDENT,
        Role.SECRETARY_GENERAL,
        Role.TREASURER,
        Role.COMMISSIONER,
        Role.GENERAL_MEANS_MANAGER,
    }
)
CAISSE_ROLES = frozenset({Role.ADMIN, Role.TREASURER, Role.COMMISSIONER})
TREASURY_ROLES = frozenset({Role.ADMIN, Role.TREASURER})

POLICY: dict[Action, frozenset[Role]] = {
    Action.VIEW_CAISSE: ALL_ROLES,
    Action.VIEW_PENDING_APPROVALS: CAISSE_ROLES,
    Action.CREATE_EXPENSE: TREASURY_ROLES,
    Action.CREATE_TRANSFER: frozenset({Role.ADMIN}),
    Action.VALIDATE_TREASURER: TREASURY_ROLES,
    Action.VALIDATE_COMMISSIONER: frozenset({Role.ADMIN, Role.COMMISSIONER}),
    Action.MANAGE_CASH_BOXES: frozenset({Role.ADMIN}),
    Action.VIEW_CONTRIBUTIONS: ALL_ROLES,
    Action.MANAGE_CONTRIBUTIONS: TREASURY_ROLES,
    Action.RECORD_PAYMENT: TREASURY_ROLES,
    Action.PAY_OWN_DUES: ALL_ROLES,
    Action.VIEW_ARREARS: ALL_ROLES,
    Action.APPLY_SUSPENSIONS: frozenset({Role.ADMIN}),
    Action.VIEW_MEMBERS: BUREAU_ROLES,
    Action.MANAGE_MEMBERS: frozenset({Role.ADMIN}),
    Action.VIEW_REPORTS: BUREAU_ROLES,
    Action.SEND_REMINDERS: TREASURY_ROLES,
    Action.VIEW_NOTIFICATION_LOGS: TREASURY_ROLES,
    Action.VIEW_ACTIVITIES: ALL_ROLES,
    Action.PUBLISH_ACTIVITY: BUREAU_ROLES,
}

# Actions a suspended member keeps: reading, and paying to regularize.
SUSPENDED_ALLOWED = frozenset(
    {
        Action.VIEW_CAISSE,
        Action.VIEW_CONTRIBUTIONS,
        Action.VIEW_ARREARS,
        Action.VIEW_ACTIVITIES,
        Action.PAY_OWN_DUES,
    }
)

SUSPENDED_MESSAGE = "Compte suspendu : cotisation non à jour. Régularisez vos mois impayés."


@dataclass(frozen=True)
class Principal:
    """The authenticated member performing an operation."""

    member_id: int
    role: Role
    is_suspended: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def is_allowed(principal: Optional[Principal], action: Action) -> bool:
    if principal is None:
        return False
    if principal.role not in POLICY.get(action, frozenset()):
        return False
    if principal.is_suspended and not principal.is_admin and action not in SUSPENDED_ALLOWED:
        return False
    return True


def require(principal: Optional[Principal], action: Action) -> Principal:
    if principal is None:
        raise AuthorizationError("Accès refusé")
    if principal.role not in POLICY.get(action, frozenset()):
        raise AuthorizationError("Vous n'avez pas les droits pour cette action")
    if principal.is_suspended and not principal.is_admin and action not in SUSPENDED_ALLOWED:
        raise AccountSuspendedError(SUSPENDED_MESSAGE)
    return principal
