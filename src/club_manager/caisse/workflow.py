"""Two-level approval state machine for expenses and cash box transfers.

PENDING_TREASURER -> PENDING_COMMISSIONER -> APPROVED, with REJECTED
reachable from either pending state. APPROVED and REJECTED are terminal.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..auth.policy import Action, Principal, require
from ..core.enums import ApprovalStatus
from ..core.exceptions import ConflictError


class Step(str, Enum):
    VALIDATE_TREASURER = "validate-treasurer"
    VALIDATE_COMMISSIONER = "validate-commissioner"
    REJECT = "reject"


TRANSITIONS: dict[tuple[ApprovalStatus, Step], ApprovalStatus] = {
    (ApprovalStatus.PENDING_TREASURER, Step.VALIDATE_TREASURER): ApprovalStatus.PENDING_COMMISSIONER,
    (ApprovalStatus.PENDING_COMMISSIONER, Step.VALIDATE_COMMISSIONER): ApprovalStatus.APPROVED,
    (ApprovalStatus.PENDING_TREASURER, Step.REJECT): ApprovalStatus.REJECTED,
    (ApprovalStatus.PENDING_COMMISSIONER, Step.REJECT): ApprovalStatus.REJECTED,
}

# The capability that owns each pending state; rejecting needs the same one.
STATE_OWNER: dict[ApprovalStatus, Action] = {
    ApprovalStatus.PENDING_TREASURER: Action.VALIDATE_TREASURER,
    ApprovalStatus.PENDING_COMMISSIONER: Action.VALIDATE_COMMISSIONER,
}

TERMINAL = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})

_CONFLICT_MESSAGES = {
    ApprovalStatus.APPROVED: "Déjà validé : aucune action possible",
    ApprovalStatus.REJECTED: "Déjà rejeté : aucune action possible",
    ApprovalStatus.PENDING_TREASURER: "En attente de validation du Trésorier",
    ApprovalStatus.PENDING_COMMISSIONER: "Déjà validé par le Trésorier, en attente du Commissaire aux comptes",
}


@dataclass(frozen=True)
class Transition:
    step: Step
    from_status: ApprovalStatus
    to_status: ApprovalStatus


def next_status(current: ApprovalStatus, step: Step) -> ApprovalStatus:
    target = TRANSITIONS.get((current, step))
    if target is None:
        raise ConflictError(_CONFLICT_MESSAGES.get(current, "Transition impossible"))
    return target


def plan(principal: Principal, current: ApprovalStatus, step: Step) -> Transition:
    """Check capability then state; returns the transition to persist.

    Nothing is mutated here: the caller applies it with a conditional
    update on ``from_status``.
    """
    if step == Step.VALIDATE_TREASURER:
        require(principal, Action.VALIDATE_TREASURER)
    elif step == Step.VALIDATE_COMMISSIONER:
        require(principal, Action.VALIDATE_COMMISSIONER)

    target = next_status(current, step)

    if step == Step.REJECT:
        require(principal, STATE_OWNER[current])

    return Transition(step=step, from_status=current, to_status=target)
