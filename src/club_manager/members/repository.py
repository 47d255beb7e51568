from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import MemberAction, Role
from .model import AuditLogEntry, Member


class MemberRepository(Protocol):
    """Repository interface for members.

    Services depend on this protocol, never on a concrete database.
    """

    def get_by_id(self, member_id: int) -> Optional[Member]:
        raise NotImplementedError

    def get_by_phone(self, phone: str) -> Optional[Member]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Member]:
        raise NotImplementedError

    def list_by_roles(self, roles: Iterable[Role]) -> Sequence[Member]:
        raise NotImplementedError

    def create(
        self,
        *,
        phone: str,
        first_name: str,
        last_name: str,
        role: Role,
        password_hash: Optional[str],
        email: Optional[str] = None,
        neighborhood: Optional[str] = None,
        secondary_contact: Optional[str] = None,
        profile_photo_url: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_fields(self, member_id: int, **fields) -> bool:
        """Update the given columns (snake_case names); returns False if nothing matched."""

        raise NotImplementedError

    def set_suspension(
        self,
        member_id: int,
        *,
        is_suspended: bool,
        reactivated_at: Optional[datetime],
        expect_suspended: Optional[bool] = None,
    ) -> bool:
        """Write the suspension state; with expect_suspended, only if the row still has that state."""

        raise NotImplementedError

    def delete_by_id(self, member_id: int) -> bool:
        """Raises ConflictError when payments still reference the member."""

        raise NotImplementedError

    def add_audit_entry(
        self,
        *,
        member_id: int,
        action: MemberAction,
        performed_by: Optional[int],
        details: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def list_audit_log(self, member_id: int, *, limit: int = 100) -> Sequence[AuditLogEntry]:
        raise NotImplementedError
