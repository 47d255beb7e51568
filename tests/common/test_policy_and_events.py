from __future__ import annotations

import pytest

from club_manager.auth.policy import Action, Principal, is_allowed, require
from club_manager.common.events import PAYMENT_RECORDED, EventBus
from club_manager.core.enums import Role
from club_manager.core.exceptions import AccountSuspendedError, AuthorizationError


def test_treasurer_can_create_expense_but_player_cannot():
    require(Principal(1, Role.TREASURER), Action.CREATE_EXPENSE)

    with pytest.raises(AuthorizationError) as exc:
        require(Principal(2, Role.PLAYER), Action.CREATE_EXPENSE)
    assert not isinstance(exc.value, AccountSuspendedError)


def test_only_admin_creates_transfers():
    assert is_allowed(Principal(1, Role.ADMIN), Action.CREATE_TRANSFER)
    assert not is_allowed(Principal(2, Role.TREASURER), Action.CREATE_TRANSFER)
    assert not is_allowed(Principal(3, Role.COMMISSIONER), Action.CREATE_TRANSFER)


def test_suspended_member_is_blocked_from_writes_with_dedicated_error():
    suspended = Principal(5, Role.TREASURER, is_suspended=True)

    with pytest.raises(AccountSuspendedError) as exc:
        require(suspended, Action.CREATE_EXPENSE)
    assert exc.value.code == "ACCOUNT_SUSPENDED"
    assert "suspendu" in str(exc.value)


def test_suspended_member_can_still_read_and_pay_own_dues():
    suspended = Principal(5, Role.PLAYER, is_suspended=True)
    require(suspended, Action.VIEW_CAISSE)
    require(suspended, Action.PAY_OWN_DUES)
    require(suspended, Action.VIEW_ARREARS)


def test_missing_principal_is_refused():
    with pytest.raises(AuthorizationError):
        require(None, Action.VIEW_CAISSE)


def test_event_bus_delivers_payload_to_every_subscriber():
    bus = EventBus()
    seen = []
    bus.subscribe(PAYMENT_RECORDED, lambda e: seen.append(("a", e.payload["member_id"])))
    bus.subscribe(PAYMENT_RECORDED, lambda e: seen.append(("b", e.payload["member_id"])))

    event = bus.publish(PAYMENT_RECORDED, member_id=7)

    assert event.name == PAYMENT_RECORDED
    assert sorted(seen) == [("a", 7), ("b", 7)]


def test_failing_subscriber_does_not_stop_the_others(caplog):
    bus = EventBus()
    seen = []

    def boom(event):
        raise RuntimeError("subscriber down")

    bus.subscribe(PAYMENT_RECORDED, boom)
    bus.subscribe(PAYMENT_RECORDED, lambda e: seen.append(e.payload["amount"]))

    bus.publish(PAYMENT_RECORDED, amount=5000)

    assert seen == [5000]
    assert "subscriber down" in caplog.text


def test_unsubscribe_and_isolated_buses():
    first = EventBus()
    second = EventBus()
    seen = []
    unsubscribe = first.subscribe(PAYMENT_RECORDED, seen.append)

    second.publish(PAYMENT_RECORDED, amount=1)
    assert seen == []

    unsubscribe()
    first.publish(PAYMENT_RECORDED, amount=2)
    assert seen == []
