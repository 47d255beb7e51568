from __future__ import annotations

from datetime import datetime

import pytest

from club_manager.core.enums import NotificationChannel, Role
from club_manager.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from club_manager.notifications.service import format_amount


def test_format_amount():
    assert format_amount(10000) == "10 000 FCFA"
    assert format_amount("1250000.00") == "1 250 000 FCFA"
    assert format_amount(None) == "0 FCFA"


def test_expense_lifecycle_notifies_the_right_people(container, club, default_box, repos, make_member):
    caisse = container.caisse_service
    other_treasurer = make_member(Role.TREASURER)

    expense = caisse.create_expense(
        club.as_treasurer, amount=10000, description="Maillots", expense_date="2024-03-14"
    )
    assert repos.notifications.for_member(club.treasurer.member_id) == []
    (to_treasurer,) = repos.notifications.for_member(other_treasurer.member_id)
    assert "10 000 FCFA" in to_treasurer.message

    caisse.validate_expense_treasurer(club.as_admin, expense.expense_id)
    (to_commissioner,) = repos.notifications.for_member(club.commissioner.member_id)
    assert to_commissioner.title == "Validation requise"

    caisse.reject_expense(club.as_commissioner, expense.expense_id, "doublon")
    (to_requester,) = repos.notifications.for_member(club.treasurer.member_id)
    assert to_requester.title == "Rejeté"
    assert to_requester.message.endswith(": doublon")


def test_approved_transfer_notifies_the_requester(container, club, default_box, repos):
    caisse = container.caisse_service
    t = caisse.create_transfer(club.as_admin, type="ALLOCATION", cash_box_id=default_box.cash_box_id, amount=2000)
    caisse.validate_transfer_treasurer(club.as_treasurer, t.transfer_id)
    caisse.validate_transfer_commissioner(club.as_commissioner, t.transfer_id)

    titles = [n.title for n in repos.notifications.for_member(club.admin.member_id)]
    assert titles == ["Validé"]


def test_list_count_and_mark_read(container, club, repos):
    service = container.notification_service
    first = repos.notifications.create(member_id=club.player.member_id, title="A", message="a")
    repos.notifications.create(member_id=club.player.member_id, title="B", message="b")
    repos.notifications.create(member_id=club.treasurer.member_id, title="C", message="c")

    assert [n.title for n in service.list(club.as_player)] == ["B", "A"]
    assert service.unread_count(club.as_player) == 2

    service.mark_as_read(club.as_player, first)
    assert service.unread_count(club.as_player) == 1
    assert service.mark_all_as_read(club.as_player) == 1
    assert service.unread_count(club.as_player) == 0
    assert service.unread_count(club.as_treasurer) == 1


def test_cannot_mark_someone_elses_notification(container, club, repos):
    theirs = repos.notifications.create(member_id=club.treasurer.member_id, title="T", message="t")
    with pytest.raises(NotFoundError):
        container.notification_service.mark_as_read(club.as_player, theirs)


def test_remind_cotisation(container, club, repos):
    note = container.notification_service.remind_cotisation(club.as_treasurer, club.player.member_id)
    assert "mars 2024" in note.message
    assert note.member_id == club.player.member_id
    with pytest.raises(AuthorizationError):
        container.notification_service.remind_cotisation(club.as_commissioner, club.player.member_id)
    with pytest.raises(NotFoundError):
        container.notification_service.remind_cotisation(club.as_treasurer, 4242)


def test_remind_all_arrears_targets_late_members_only(container, club, monthly, repos, make_member):
    make_member(Role.SUPPORTER, created_at=datetime(2024, 4, 1))
    container.contribution_service.record_payment(
        club.as_treasurer, member_id=club.player.member_id, contribution_id=monthly.contribution_id, amount=5000
    )

    report = container.notification_service.remind_all_arrears(club.as_treasurer, message="Merci de régler")

    assert (report.sent, report.total) == (2, 2)
    assert "mars 2024" in report.message
    for member in (club.treasurer, club.commissioner):
        reminders = [n for n in repos.notifications.for_member(member.member_id) if n.message == "Merci de régler"]
        assert [n.title for n in reminders] == ["Cotisation mars 2024"]

    with pytest.raises(ValidationError) as exc:
        container.notification_service.remind_all_arrears(club.as_treasurer, message=" ")
    assert exc.value.field == "message"


def test_reminders_and_confirmations_are_logged(container, club, monthly, repos):
    service = container.notification_service
    container.contribution_service.record_payment(
        club.as_treasurer, member_id=club.player.member_id, contribution_id=monthly.contribution_id, amount=5000
    )
    service.remind_all_arrears(club.as_treasurer, message="Pensez à la cotisation")

    logs = service.list_logs(club.as_admin)
    assert sorted((log.type.value, log.member_id) for log in logs) == [
        ("ARREARS_REMINDER", club.treasurer.member_id),
        ("ARREARS_REMINDER", club.commissioner.member_id),
        ("PAYMENT_CONFIRMATION", club.player.member_id),
    ]
    assert all(log.channel == NotificationChannel.IN_APP for log in logs)

    (confirmation,) = service.list_logs(club.as_treasurer, member_id=str(club.player.member_id))
    assert confirmation.member.first_name == "Paul"
    assert "5 000 FCFA" in confirmation.payload
    assert len(service.list_logs(club.as_admin, limit=1)) == 1


def test_logs_are_for_the_treasury(container, club):
    with pytest.raises(AuthorizationError):
        container.notification_service.list_logs(club.as_commissioner)
    with pytest.raises(ValidationError) as exc:
        container.notification_service.list_logs(club.as_admin, member_id="abc")
    assert exc.value.field == "memberId"
