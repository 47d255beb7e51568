from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import MemberAction, Role


@dataclass(frozen=True)
class Member:
    """Domain entity: a club member.

    Pure data object; no DB access here.
    """

    member_id: int
    phone: str
    first_name: str
    last_name: str
    role: Role
    password_hash: Optional[str] = None
    is_suspended: bool = False
    reactivated_at: Optional[datetime] = None
    profile_completed: bool = False
    email: Optional[str] = None
    neighborhood: Optional[str] = None
    secondary_contact: Optional[str] = None
    profile_photo_url: Optional[str] = None
    activities_seen_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class MemberRef:
    """Short member card embedded in other payloads."""

    member_id: int
    first_name: str
    last_name: str
    phone: str
    role: Role
    is_suspended: bool = False


@dataclass(frozen=True)
class AuditLogEntry:
    entry_id: int
    member_id: int
    action: MemberAction
    performed_by: Optional[int]
    details: Optional[str]
    created_at: datetime
