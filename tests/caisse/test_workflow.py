import pytest

from club_manager.auth.policy import Principal
from club_manager.caisse import workflow
from club_manager.core.enums import ApprovalStatus, Role
from club_manager.core.exceptions import AuthorizationError, ConflictError

TREASURER = Principal(2, Role.TREASURER)
COMMISSIONER = Principal(3, Role.COMMISSIONER)
ADMIN = Principal(1, Role.ADMIN)
PLAYER = Principal(4, Role.PLAYER)


def test_happy_path_transitions():
    t = workflow.plan(TREASURER, ApprovalStatus.PENDING_TREASURER, workflow.Step.VALIDATE_TREASURER)
    assert (t.from_status, t.to_status) == (ApprovalStatus.PENDING_TREASURER, ApprovalStatus.PENDING_COMMISSIONER)

    t = workflow.plan(COMMISSIONER, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.VALIDATE_COMMISSIONER)
    assert t.to_status == ApprovalStatus.APPROVED


def test_commissioner_cannot_do_treasurer_step():
    with pytest.raises(AuthorizationError):
        workflow.plan(COMMISSIONER, ApprovalStatus.PENDING_TREASURER, workflow.Step.VALIDATE_TREASURER)


def test_treasurer_validating_twice_is_a_conflict():
    with pytest.raises(ConflictError) as exc:
        workflow.plan(TREASURER, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.VALIDATE_TREASURER)
    assert "Commissaire" in str(exc.value)


@pytest.mark.parametrize("terminal", [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
def test_terminal_states_accept_nothing(terminal):
    for step in workflow.Step:
        with pytest.raises(ConflictError):
            workflow.plan(ADMIN, terminal, step)


def test_reject_belongs_to_the_owner_of_the_pending_state():
    workflow.plan(TREASURER, ApprovalStatus.PENDING_TREASURER, workflow.Step.REJECT)
    workflow.plan(COMMISSIONER, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.REJECT)

    with pytest.raises(AuthorizationError):
        workflow.plan(TREASURER, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.REJECT)
    with pytest.raises(AuthorizationError):
        workflow.plan(COMMISSIONER, ApprovalStatus.PENDING_TREASURER, workflow.Step.REJECT)


def test_admin_may_act_at_every_level():
    workflow.plan(ADMIN, ApprovalStatus.PENDING_TREASURER, workflow.Step.VALIDATE_TREASURER)
    workflow.plan(ADMIN, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.VALIDATE_COMMISSIONER)
    workflow.plan(ADMIN, ApprovalStatus.PENDING_COMMISSIONER, workflow.Step.REJECT)


def test_player_cannot_reject():
    with pytest.raises(AuthorizationError):
        workflow.plan(PLAYER, ApprovalStatus.PENDING_TREASURER, workflow.Step.REJECT)
