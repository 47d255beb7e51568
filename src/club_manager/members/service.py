from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..auth.policy import Action, Principal, require
from ..common import events
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_bool, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import MemberAction, Role
from ..core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .model import AuditLogEntry, Member
from .repository import MemberRepository

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("first_name", "last_name", "phone", "email", "neighborhood", "secondary_contact", "profile_photo_url")


@dataclass(frozen=True)
class SessionMember:
    """What we store into the Flask session after login."""

    member_id: int
    full_name: str
    role: Role
    is_suspended: bool
    reactivated_at: Optional[datetime]
    profile_completed: bool


def _parse_role(value: Any) -> Role:
    try:
        return value if isinstance(value, Role) else Role(str(value).upper())
    except ValueError:
        raise ValidationError("Rôle inconnu", field="role")


class AuthService:
    """Use case: authenticate a member (login) and resolve the request principal."""

    def __init__(self, members: MemberRepository):
        self._members = members

    def authenticate(self, phone: str, password: str) -> SessionMember:
        member = self._members.get_by_phone((phone or "").strip())
        if not member or not member.password_hash:
            raise AuthenticationError("Téléphone ou mot de passe incorrect")

        try:
            ok = check_password_hash(member.password_hash, password or "")
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
            ok = False

        if not ok:
            raise AuthenticationError("Téléphone ou mot de passe incorrect")

        # Suspended members may still log in: they need access to regularize.
        return SessionMember(
            member_id=member.member_id,
            full_name=member.full_name,
            role=member.role,
            is_suspended=member.is_suspended,
            reactivated_at=member.reactivated_at,
            profile_completed=member.profile_completed or member.role == Role.ADMIN,
        )

    def principal_for(self, member_id: Optional[int]) -> Principal:
        if member_id is None:
            raise AuthenticationError("Non autorisé")
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise AuthenticationError("Session expirée")
        return Principal(member_id=member.member_id, role=member.role, is_suspended=member.is_suspended)


class MemberService:
    """Use case: manage the membership registry."""

    def __init__(self, members: MemberRepository, *, bus: Optional[events.EventBus] = None, clock=now_local):
        self._members = members
        self._bus = bus or events.EventBus()
        self._clock = clock

    def _get(self, member_id: int) -> Member:
        member = self._members.get_by_id(int(member_id))
        if not member:
            raise NotFoundError("Membre introuvable")
        return member

    def list_members(self, principal: Principal) -> list[Member]:
        require(principal, Action.VIEW_MEMBERS)
        return list(self._members.list_all())

    def get_member(self, principal: Principal, member_id: int) -> Member:
        if principal.member_id != int(member_id):
            require(principal, Action.VIEW_MEMBERS)
        return self._get(member_id)

    def me(self, principal: Principal) -> Member:
        return self._get(principal.member_id)

    def create_member(
        self,
        principal: Principal,
        *,
        phone: str,
        password: str,
        first_name: str,
        last_name: str,
        role: Any,
        email: Optional[str] = None,
        neighborhood: Optional[str] = None,
        secondary_contact: Optional[str] = None,
        profile_photo_url: Optional[str] = None,
    ) -> Member:
        require(principal, Action.MANAGE_MEMBERS)

        phone = require_non_empty(phone, "Téléphone", field="phone")
        first_name = require_non_empty(first_name, "Prénom", field="firstName")
        last_name = require_non_empty(last_name, "Nom", field="lastName")
        require_min_length(password, "Mot de passe", MIN_PASSWORD_LENGTH, field="password")
        member_role = _parse_role(role)

        if self._members.get_by_phone(phone):
            raise ConflictError("Ce numéro de téléphone est déjà utilisé")

        member_id = self._members.create(
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            role=member_role,
            password_hash=generate_password_hash(password),
            email=optional_text(email),
            neighborhood=optional_text(neighborhood),
            secondary_contact=optional_text(secondary_contact),
            profile_photo_url=optional_text(profile_photo_url),
        )
        self._members.add_audit_entry(
            member_id=member_id,
            action=MemberAction.CREATED,
            performed_by=principal.member_id,
            details=member_role.value,
        )
        logger.info("member %s created by %s with role %s", member_id, principal.member_id, member_role.value)
        return self._get(member_id)

    def complete_profile(
        self,
        principal: Principal,
        *,
        first_name: str,
        last_name: str,
        profile_photo_url: str,
        email: Optional[str] = None,
        neighborhood: Optional[str] = None,
        secondary_contact: Optional[str] = None,
    ) -> Member:
        fields = {
            "first_name": require_non_empty(first_name, "Prénom", field="firstName"),
            "last_name": require_non_empty(last_name, "Nom", field="lastName"),
            "profile_photo_url": require_non_empty(profile_photo_url, "Photo de profil", field="profilePhotoUrl"),
            "email": optional_text(email),
            "neighborhood": optional_text(neighborhood),
            "secondary_contact": optional_text(secondary_contact),
            "profile_completed": True,
        }
        if not self._members.update_fields(principal.member_id, **fields):
            raise NotFoundError("Membre introuvable")
        self._members.add_audit_entry(
            member_id=principal.member_id,
            action=MemberAction.PROFILE_COMPLETED,
            performed_by=principal.member_id,
        )
        return self._get(principal.member_id)

    def update_member(self, principal: Principal, member_id: int, changes: dict) -> Member:
        """Admin edit. ``is_suspended`` in changes drives suspend / reactivate."""
        require(principal, Action.MANAGE_MEMBERS)
        member = self._get(member_id)
        wants_suspended = None
        if changes.get("is_suspended") is not None:
            wants_suspended = require_bool(changes["is_suspended"], "Suspension", field="isSuspended")

        fields: dict[str, Any] = {}
        for name in _PROFILE_FIELDS:
            if name in changes:
                value = changes[name]
                if name in {"first_name", "last_name", "phone"}:
                    value = require_non_empty(value, name, field=name)
                else:
                    value = optional_text(value)
                fields[name] = value

        if "phone" in fields and fields["phone"] != member.phone:
            other = self._members.get_by_phone(fields["phone"])
            if other and other.member_id != member.member_id:
                raise ConflictError("Ce numéro de téléphone est déjà utilisé")

        if changes.get("password"):
            require_min_length(changes["password"], "Mot de passe", MIN_PASSWORD_LENGTH, field="password")
            fields["password_hash"] = generate_password_hash(changes["password"])

        new_role = None
        if changes.get("role") is not None:
            new_role = _parse_role(changes["role"])
            if new_role != member.role:
                fields["role"] = new_role

        if fields:
            self._members.update_fields(member.member_id, **fields)
            if "role" in fields:
                self._members.add_audit_entry(
                    member_id=member.member_id,
                    action=MemberAction.ROLE_CHANGED,
                    performed_by=principal.member_id,
                    details=f"{member.role.value} -> {new_role.value}",
                )
            other_fields = sorted(k for k in fields if k not in {"role", "password_hash"})
            if other_fields or "password_hash" in fields:
                self._members.add_audit_entry(
                    member_id=member.member_id,
                    action=MemberAction.UPDATED,
                    performed_by=principal.member_id,
                    details=", ".join(other_fields) or None,
                )

        if wants_suspended is True and not member.is_suspended:
            self.suspend_member(member.member_id, performed_by=principal.member_id, details="Suspension manuelle")
        elif wants_suspended is False and member.is_suspended:
            self.reactivate_member(member.member_id, performed_by=principal.member_id)

        return self._get(member.member_id)

    def delete_member(self, principal: Principal, member_id: int) -> None:
        require(principal, Action.MANAGE_MEMBERS)
        member = self._get(member_id)
        if member.role == Role.ADMIN:
            raise ConflictError("Impossible de supprimer un compte administrateur")
        if not self._members.delete_by_id(member.member_id):
            raise NotFoundError("Membre introuvable")
        logger.info("member %s deleted by %s", member.member_id, principal.member_id)

    def audit_log(self, principal: Principal, member_id: int) -> list[AuditLogEntry]:
        require(principal, Action.VIEW_MEMBERS)
        self._get(member_id)
        return list(self._members.list_audit_log(int(member_id)))

    # -------- Suspension transitions --------
    def suspend_member(self, member_id: int, *, performed_by: Optional[int] = None, details: Optional[str] = None) -> Member:
        member = self._get(member_id)
        if member.role == Role.ADMIN:
            raise ConflictError("Un administrateur ne peut pas être suspendu")
        if member.is_suspended:
            raise ConflictError("Ce membre est déjà suspendu")

        if not self._members.set_suspension(
            member.member_id, is_suspended=True, reactivated_at=None, expect_suspended=False
        ):
            raise ConflictError("Ce membre est déjà suspendu")
        self._members.add_audit_entry(
            member_id=member.member_id,
            action=MemberAction.SUSPENDED,
            performed_by=performed_by,
            details=details,
        )
        logger.info("member %s suspended (%s)", member.member_id, details or "no details")
        self._bus.publish(events.MEMBER_SUSPENDED, member_id=member.member_id, details=details)
        return self._get(member.member_id)

    def reactivate_member(self, member_id: int, *, performed_by: Optional[int] = None) -> Member:
        """Lift a suspension and open the grace window."""
        member = self._get(member_id)
        if not member.is_suspended:
            raise ConflictError("Ce membre n'est pas suspendu")

        now = self._clock()
        if not self._members.set_suspension(
            member.member_id, is_suspended=False, reactivated_at=now, expect_suspended=True
        ):
            raise ConflictError("Ce membre n'est pas suspendu")
        self._members.add_audit_entry(
            member_id=member.member_id,
            action=MemberAction.REACTIVATED,
            performed_by=performed_by,
        )
        logger.info("member %s reactivated by %s, grace starts %s", member.member_id, performed_by, now.isoformat())
        self._bus.publish(events.MEMBER_REACTIVATED, member_id=member.member_id, reactivated_at=now)
        return self._get(member.member_id)

    def end_grace(self, member_id: int) -> Member:
        """Grace window closed with everything paid: back to plain active."""
        member = self._get(member_id)
        if member.is_suspended or member.reactivated_at is None:
            return member
        if self._members.set_suspension(
            member.member_id, is_suspended=False, reactivated_at=None, expect_suspended=False
        ):
            logger.info("member %s regularized, grace cleared", member.member_id)
        return self._get(member.member_id)
