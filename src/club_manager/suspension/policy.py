"""Suspension rules, as pure functions of a member, their unpaid months and now.

ACTIVE -> SUSPENDED -> GRACE -> ACTIVE | SUSPENDED. Admin accounts are
never affected.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Sequence

from ..common.periods import Period
from ..core.constants import DUES_DAY, REACTIVATION_GRACE_HOURS
from ..core.enums import MemberState, Role
from ..members.model import Member


class Decision(str, Enum):
    SUSPEND = "SUSPEND"
    RESTORE = "RESTORE"
    NONE = "NONE"


def grace_expires_at(member: Member, grace_hours: int = REACTIVATION_GRACE_HOURS) -> Optional[datetime]:
    if member.reactivated_at is None:
        return None
    return member.reactivated_at + timedelta(hours=grace_hours)


def member_state(member: Member, now: datetime, grace_hours: int = REACTIVATION_GRACE_HOURS) -> MemberState:
    if member.is_suspended:
        return MemberState.SUSPENDED
    expires = grace_expires_at(member, grace_hours)
    if expires is not None and now < expires:
        return MemberState.GRACE
    return MemberState.ACTIVE


def is_past_due(now: datetime, dues_day: int = DUES_DAY) -> bool:
    """True once the current month's dues day has passed."""
    return now.day > dues_day


def evaluate(
    member: Member,
    unpaid: Sequence[Period],
    now: datetime,
    *,
    dues_day: int = DUES_DAY,
    grace_hours: int = REACTIVATION_GRACE_HOURS,
) -> Decision:
    """What the scheduled job should do with this member right now.

    A suspended member stays suspended until an admin reactivates them.
    A member in (or past) a grace window is restored once nothing is
    unpaid, and suspended again when the window closes with months left.
    Otherwise any unpaid month before the current one suspends, and the
    current month only counts after the dues day.
    """
    if member.role == Role.ADMIN or member.is_suspended:
        return Decision.NONE

    if member.reactivated_at is not None:
        if not unpaid:
            return Decision.RESTORE
        expires = grace_expires_at(member, grace_hours)
        if expires is not None and now >= expires:
            return Decision.SUSPEND
        return Decision.NONE

    if not unpaid:
        return Decision.NONE
    current = Period.of(now)
    if any(p < current for p in unpaid):
        return Decision.SUSPEND
    if current in unpaid and is_past_due(now, dues_day):
        return Decision.SUSPEND
    return Decision.NONE
