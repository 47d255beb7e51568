from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Member roles used for authorization."""

    ADMIN = "ADMIN"
    PRESIDENT = "PRESIDENT"
    SECRETARY_GENERAL = "SECRETARY_GENERAL"
    TREASURER = "TREASURER"
    COMMISSIONER = "COMMISSIONER"
    GENERAL_MEANS_MANAGER = "GENERAL_MEANS_MANAGER"
    PLAYER = "PLAYER"
    FORMER_PLAYER = "FORMER_PLAYER"
    SUPPORTER = "SUPPORTER"


ROLE_LABELS_FR = {
    Role.ADMIN: "Administrateur",
    Role.PRESIDENT: "Président",
    Role.SECRETARY_GENERAL: "Secrétaire général",
    Role.TREASURER: "Trésorier",
    Role.COMMISSIONER: "Commissaire aux comptes",
    Role.GENERAL_MEANS_MANAGER: "Responsable moyens généraux",
    Role.PLAYER: "Membre",
    Role.FORMER_PLAYER: "Ancien membre",
    Role.SUPPORTER: "Supporter",
}


class ApprovalStatus(str, Enum):
    """Two-level approval workflow shared by expenses and cash box transfers."""

    PENDING_TREASURER = "PENDING_TREASURER"
    PENDING_COMMISSIONER = "PENDING_COMMISSIONER"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TransferType(str, Enum):
    ALLOCATION = "ALLOCATION"
    WITHDRAWAL = "WITHDRAWAL"


class ContributionType(str, Enum):
    MONTHLY = "MONTHLY"
    EXCEPTIONAL = "EXCEPTIONAL"
    PROJECT = "PROJECT"


class LedgerDirection(str, Enum):
    ENTREE = "entree"
    SORTIE = "sortie"


class LedgerKind(str, Enum):
    PAYMENT = "payment"
    ALLOCATION = "allocation"
    EXPENSE = "expense"
    WITHDRAWAL = "withdrawal"


class MemberAction(str, Enum):
    """Audit log actions recorded on a member."""

    CREATED = "CREATED"
    PROFILE_COMPLETED = "PROFILE_COMPLETED"
    UPDATED = "UPDATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    SUSPENDED = "SUSPENDED"
    REACTIVATED = "REACTIVATED"


class MemberState(str, Enum):
    ACTIVE = "ACTIVE"
    GRACE = "GRACE"
    SUSPENDED = "SUSPENDED"


class ActivityType(str, Enum):
    MATCH = "MATCH"
    TRAINING = "TRAINING"
    BIRTHDAY = "BIRTHDAY"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    OTHER = "OTHER"


class NotificationChannel(str, Enum):
    IN_APP = "IN_APP"


class NotificationKind(str, Enum):
    """What a send log entry was sent for."""

    COTISATION_REMINDER = "COTISATION_REMINDER"
    ARREARS_REMINDER = "ARREARS_REMINDER"
    PAYMENT_CONFIRMATION = "PAYMENT_CONFIRMATION"
