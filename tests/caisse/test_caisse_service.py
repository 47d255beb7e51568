from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from decimal import Decimal

import pytest

from club_manager.auth.policy import Principal
from club_manager.core.enums import ApprovalStatus, Role, TransferType
from club_manager.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError


def new_expense(container, principal, amount=10000, **extra):
    return container.caisse_service.create_expense(
        principal,
        amount=amount,
        description=extra.pop("description", "Achat ballons"),
        expense_date=extra.pop("expense_date", "2024-03-14"),
        **extra,
    )


def test_expense_goes_through_both_validations(container, club, default_box):
    caisse = container.caisse_service
    expense = new_expense(container, club.as_treasurer)
    assert expense.status == ApprovalStatus.PENDING_TREASURER
    assert caisse.summary(club.as_player).global_totals.total_exits == Decimal("0")

    expense = caisse.validate_expense_treasurer(club.as_treasurer, expense.expense_id)
    assert expense.status == ApprovalStatus.PENDING_COMMISSIONER
    assert expense.treasurer_approved_by == club.treasurer.member_id
    assert caisse.summary(club.as_player).global_totals.total_exits == Decimal("0")

    expense = caisse.validate_expense_commissioner(club.as_commissioner, expense.expense_id)
    assert expense.status == ApprovalStatus.APPROVED
    assert expense.commissioner_approved_by == club.commissioner.member_id

    summary = caisse.summary(club.as_player)
    assert summary.global_totals.total_exits == Decimal("10000")
    assert summary.global_totals.balance == Decimal("-10000")
    assert summary.boxes[0].cash_box_id == default_box.cash_box_id
    assert summary.boxes[0].total_exits == Decimal("10000")


def test_commissioner_rejects_with_reason(container, club, default_box):
    caisse = container.caisse_service
    expense = new_expense(container, club.as_treasurer)
    caisse.validate_expense_treasurer(club.as_treasurer, expense.expense_id)

    rejected = caisse.reject_expense(club.as_commissioner, expense.expense_id, "duplicate")

    assert rejected.status == ApprovalStatus.REJECTED
    assert rejected.reject_reason == "duplicate"
    assert rejected.rejected_by == club.commissioner.member_id
    assert caisse.ledger(club.as_player) == []


def test_rejecting_twice_is_a_conflict(container, club, default_box):
    caisse = container.caisse_service
    expense = new_expense(container, club.as_treasurer)
    caisse.reject_expense(club.as_treasurer, expense.expense_id)

    with pytest.raises(ConflictError):
        caisse.reject_expense(club.as_treasurer, expense.expense_id)
    with pytest.raises(ConflictError):
        caisse.validate_expense_treasurer(club.as_treasurer, expense.expense_id)


def test_reject_reason_is_limited(container, club, default_box):
    expense = new_expense(container, club.as_treasurer)
    with pytest.raises(ValidationError) as exc:
        container.caisse_service.reject_expense(club.as_treasurer, expense.expense_id, "x" * 501)
    assert exc.value.field == "motif"
    assert container.caisse_service.get_expense(club.as_player, expense.expense_id).status == ApprovalStatus.PENDING_TREASURER


def test_concurrent_validations_only_one_wins(container, club, default_box):
    caisse = container.caisse_service
    expense = new_expense(container, club.as_treasurer)

    def validate(principal):
        try:
            caisse.validate_expense_treasurer(principal, expense.expense_id)
            return "ok"
        except ConflictError:
            return "conflict"

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(validate, [club.as_treasurer, club.as_admin]))

    assert sorted(results) == ["conflict", "ok"]
    assert caisse.get_expense(club.as_player, expense.expense_id).status == ApprovalStatus.PENDING_COMMISSIONER


def test_stale_read_loses_the_race(container, club, default_box, repos, monkeypatch):
    """The conditional update refuses a transition planned on a state that has since moved."""
    caisse = container.caisse_service
    snapshot = new_expense(container, club.as_treasurer)
    repos.expenses.apply_transition(
        snapshot.expense_id,
        from_status=ApprovalStatus.PENDING_TREASURER,
        to_status=ApprovalStatus.REJECTED,
        actor_id=club.admin.member_id,
    )
    fresh = repos.expenses.get_by_id
    reads = []

    def stale_then_fresh(expense_id):
        reads.append(expense_id)
        return snapshot if len(reads) == 1 else fresh(expense_id)

    monkeypatch.setattr(repos.expenses, "get_by_id", stale_then_fresh)
    with pytest.raises(ConflictError) as exc:
        caisse.validate_expense_treasurer(club.as_treasurer, snapshot.expense_id)
    assert "autre action" in str(exc.value)


def test_player_cannot_create_or_validate(container, club, default_box):
    with pytest.raises(AuthorizationError):
        new_expense(container, club.as_player)
    expense = new_expense(container, club.as_treasurer)
    with pytest.raises(AuthorizationError):
        container.caisse_service.validate_expense_treasurer(club.as_player, expense.expense_id)


def test_expense_validation_errors(container, club, default_box):
    with pytest.raises(ValidationError) as exc:
        new_expense(container, club.as_treasurer, amount=0)
    assert exc.value.field == "amount"
    with pytest.raises(ValidationError) as exc:
        new_expense(container, club.as_treasurer, description="  ")
    assert exc.value.field == "description"
    with pytest.raises(NotFoundError):
        new_expense(container, club.as_treasurer, cash_box_id=999)


def test_allocation_and_withdrawal_move_money_in_and_out_of_a_box(container, club, default_box):
    caisse = container.caisse_service
    tournoi = caisse.create_box(club.as_admin, name="Tournoi")

    alloc = caisse.create_transfer(club.as_admin, type="allocation", cash_box_id=tournoi.cash_box_id, amount=3000)
    assert alloc.type == TransferType.ALLOCATION
    assert alloc.to_cash_box_id == tournoi.cash_box_id and alloc.from_cash_box_id is None
    withdraw = caisse.create_transfer(club.as_admin, type="WITHDRAWAL", cash_box_id=tournoi.cash_box_id, amount=500)
    assert withdraw.from_cash_box_id == tournoi.cash_box_id

    for t in (alloc, withdraw):
        caisse.validate_transfer_treasurer(club.as_treasurer, t.transfer_id)
        caisse.validate_transfer_commissioner(club.as_commissioner, t.transfer_id)

    summary = caisse.summary(club.as_player)
    box = next(b for b in summary.boxes if b.cash_box_id == tournoi.cash_box_id)
    assert (box.total_entries, box.total_exits, box.balance) == (Decimal("3000"), Decimal("500"), Decimal("2500"))
    assert len(caisse.list_transfers(club.as_player, cash_box_id=tournoi.cash_box_id)) == 2


def test_transfer_requires_admin_and_known_type(container, club, default_box):
    caisse = container.caisse_service
    with pytest.raises(AuthorizationError):
        caisse.create_transfer(club.as_treasurer, type="ALLOCATION", cash_box_id=default_box.cash_box_id, amount=10)
    with pytest.raises(ValidationError) as exc:
        caisse.create_transfer(club.as_admin, type="LOAN", cash_box_id=default_box.cash_box_id, amount=10)
    assert exc.value.field == "type"
    with pytest.raises(ValidationError):
        caisse.create_transfer(club.as_admin, type="ALLOCATION", cash_box_id=None, amount=10)


def test_transfer_rejected_at_commissioner_level(container, club, default_box):
    caisse = container.caisse_service
    t = caisse.create_transfer(club.as_admin, type="ALLOCATION", cash_box_id=default_box.cash_box_id, amount=100)
    caisse.validate_transfer_treasurer(club.as_treasurer, t.transfer_id)
    with pytest.raises(AuthorizationError):
        caisse.reject_transfer(club.as_treasurer, t.transfer_id, "non")
    rejected = caisse.reject_transfer(club.as_commissioner, t.transfer_id, "non")
    assert rejected.status == ApprovalStatus.REJECTED


def test_pending_count_sums_expenses_and_transfers(container, club, default_box):
    caisse = container.caisse_service
    e1 = new_expense(container, club.as_treasurer)
    new_expense(container, club.as_treasurer)
    caisse.create_transfer(club.as_admin, type="ALLOCATION", cash_box_id=default_box.cash_box_id, amount=100)
    caisse.validate_expense_treasurer(club.as_treasurer, e1.expense_id)

    count = caisse.pending_count(club.as_commissioner)
    assert (count.pending_treasurer, count.pending_commissioner) == (2, 1)
    with pytest.raises(AuthorizationError):
        caisse.pending_count(club.as_player)


def test_first_box_becomes_default_and_order_increments(container, club, default_box):
    caisse = container.caisse_service
    assert default_box.is_default
    second = caisse.create_box(club.as_admin, name="Tournoi")
    assert not second.is_default
    assert second.order == default_box.order + 1

    promoted = caisse.update_box(club.as_admin, second.cash_box_id, {"is_default": True, "description": "Coupe"})
    assert promoted.is_default and promoted.description == "Coupe"
    assert [b.is_default for b in caisse.list_boxes(club.as_player)] == [False, True]


def test_deleting_a_box_moves_its_movements_to_the_default(container, club, default_box, repos):
    caisse = container.caisse_service
    tournoi = caisse.create_box(club.as_admin, name="Tournoi")
    expense = new_expense(container, club.as_treasurer, cash_box_id=tournoi.cash_box_id)
    caisse.validate_expense_treasurer(club.as_treasurer, expense.expense_id)
    caisse.validate_expense_commissioner(club.as_commissioner, expense.expense_id)

    caisse.delete_box(club.as_admin, tournoi.cash_box_id)

    assert repos.expenses.get_by_id(expense.expense_id).cash_box_id == default_box.cash_box_id
    summary = caisse.summary(club.as_player)
    assert [b.cash_box_id for b in summary.boxes] == [default_box.cash_box_id]
    assert summary.boxes[0].total_exits == Decimal("10000")


def test_default_box_cannot_be_deleted(container, club, default_box):
    with pytest.raises(ConflictError):
        container.caisse_service.delete_box(club.as_admin, default_box.cash_box_id)
    with pytest.raises(AuthorizationError):
        container.caisse_service.delete_box(club.as_treasurer, default_box.cash_box_id)


def test_payments_enter_the_default_box(container, club, default_box, monthly):
    container.contribution_service.record_payment(
        club.as_treasurer, member_id=club.player.member_id, contribution_id=monthly.contribution_id, amount=5000
    )
    (entry,) = container.caisse_service.ledger(club.as_player)
    assert entry.cash_box_id == default_box.cash_box_id
    assert entry.label == "Cotisation mensuelle"
    assert entry.date == datetime(2024, 3, 15, 9, 0)


def test_suspended_treasurer_cannot_create_expense(container, club, default_box, make_member):
    member = make_member(Role.TREASURER, is_suspended=True)
    suspended = Principal(member.member_id, member.role, is_suspended=True)
    with pytest.raises(AuthorizationError) as exc:
        new_expense(container, suspended)
    assert exc.value.code == "ACCOUNT_SUSPENDED"


def test_box_promoted_while_deleting_keeps_its_movements(container, club, default_box, repos, monkeypatch):
    caisse = container.caisse_service
    tournoi = caisse.create_box(club.as_admin, name="Tournoi")
    expense = new_expense(container, club.as_treasurer, cash_box_id=tournoi.cash_box_id)
    stale_boxes = list(repos.boxes.list_all())
    repos.boxes.set_default(tournoi.cash_box_id)

    monkeypatch.setattr(repos.boxes, "get_by_id", lambda box_id: next(b for b in stale_boxes if b.cash_box_id == box_id))
    monkeypatch.setattr(repos.boxes, "list_all", lambda: stale_boxes)
    with pytest.raises(ConflictError):
        caisse.delete_box(club.as_admin, tournoi.cash_box_id)

    assert repos.expenses.get_by_id(expense.expense_id).cash_box_id == tournoi.cash_box_id
    monkeypatch.undo()
    assert repos.boxes.get_by_id(tournoi.cash_box_id).is_default


def test_reject_reason_and_texts_accept_any_scalar(container, club, default_box):
    caisse = container.caisse_service
    expense = new_expense(container, club.as_treasurer, description=2024, beneficiary=42)
    assert expense.description == "2024"
    assert expense.beneficiary == "42"

    rejected = caisse.reject_expense(club.as_treasurer, expense.expense_id, 123)
    assert rejected.reject_reason == "123"


def test_transition_on_malformed_id_is_a_validation_error(container, club):
    with pytest.raises(ValidationError) as exc:
        container.caisse_service.validate_expense_treasurer(club.as_treasurer, "abc")
    assert exc.value.field == "expenseId"
    with pytest.raises(ValidationError) as exc:
        container.caisse_service.reject_transfer(club.as_admin, None)
    assert exc.value.field == "transferId"
