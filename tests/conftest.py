from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import Iterable, Optional

import pytest
from werkzeug.security import generate_password_hash

from club_manager.activities.model import Activity, Announcement, AnnouncementAuthor, Photo
from club_manager.auth.policy import Principal
from club_manager.caisse.model import CashBox, CashBoxTransfer, Expense
from club_manager.container import assemble
from club_manager.contributions.model import Contribution, Payment
from club_manager.core.enums import (
    ApprovalStatus,
    ContributionType,
    MemberAction,
    NotificationChannel,
    Role,
)
from club_manager.core.exceptions import ConflictError
from club_manager.members.model import AuditLogEntry, Member
from club_manager.notifications.model import LogMember, Notification, NotificationLog


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemoryMembers:
    def __init__(self, clock: FakeClock):
        self._clock = clock
        # Set by the repos fixture; deleting a member with payments is refused.
        self.contributions: Optional["InMemoryContributions"] = None
        self._members: dict[int, Member] = {}
        self._audit: list[AuditLogEntry] = []
        self._id = 0

    def add(self, member: Member) -> Member:
        self._members[member.member_id] = member
        self._id = max(self._id, member.member_id)
        return member

    def get_by_id(self, member_id: int) -> Optional[Member]:
        return self._members.get(int(member_id))

    def get_by_phone(self, phone: str) -> Optional[Member]:
        return next((m for m in self._members.values() if m.phone == phone), None)

    def list_all(self):
        return sorted(self._members.values(), key=lambda m: (m.last_name, m.first_name))

    def list_by_roles(self, roles: Iterable[Role]):
        wanted = set(roles)
        return [m for m in self.list_all() if m.role in wanted]

    def create(self, *, phone, first_name, last_name, role, password_hash, **extra) -> int:
        self._id += 1
        self._members[self._id] = Member(
            member_id=self._id,
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            role=role,
            password_hash=password_hash,
            created_at=self._clock(),
            **extra,
        )
        return self._id

    def update_fields(self, member_id: int, **fields) -> bool:
        member = self._members.get(int(member_id))
        if not member:
            return False
        self._members[member.member_id] = replace(member, updated_at=self._clock(), **fields)
        return True

    def set_suspension(
        self, member_id: int, *, is_suspended: bool, reactivated_at: Optional[datetime], expect_suspended=None
    ) -> bool:
        member = self._members.get(int(member_id))
        if member is None or (expect_suspended is not None and member.is_suspended != expect_suspended):
            return False
        return self.update_fields(member_id, is_suspended=is_suspended, reactivated_at=reactivated_at)

    def delete_by_id(self, member_id: int) -> bool:
        if self.contributions and any(p.member_id == int(member_id) for p in self.contributions.payments):
            raise ConflictError("Ce membre a des paiements enregistrés et ne peut pas être supprimé")
        return self._members.pop(int(member_id), None) is not None

    def add_audit_entry(self, *, member_id, action: MemberAction, performed_by, details=None) -> int:
        entry = AuditLogEntry(
            entry_id=len(self._audit) + 1,
            member_id=member_id,
            action=action,
            performed_by=performed_by,
            details=details,
            created_at=self._clock(),
        )
        self._audit.append(entry)
        return entry.entry_id

    def list_audit_log(self, member_id: int, *, limit: int = 100):
        rows = [e for e in self._audit if e.member_id == member_id]
        return list(reversed(rows))[:limit]


class InMemoryContributions:
    def __init__(self, clock: FakeClock):
        self._clock = clock
        self._contributions: dict[int, Contribution] = {}
        self.payments: list[Payment] = []

    def _with_count(self, c: Contribution) -> Contribution:
        count = sum(1 for p in self.payments if p.contribution_id == c.contribution_id)
        return replace(c, payments_count=count)

    def list_contributions(self):
        return [self._with_count(c) for c in sorted(self._contributions.values(), key=lambda c: -c.contribution_id)]

    def get_contribution(self, contribution_id: int):
        c = self._contributions.get(int(contribution_id))
        return self._with_count(c) if c else None

    def get_monthly(self):
        monthly = [c for c in self._contributions.values() if c.type == ContributionType.MONTHLY]
        return self._with_count(min(monthly, key=lambda c: c.contribution_id)) if monthly else None

    def create_contribution(self, *, name, type, amount, start_date, end_date, target_amount, frequency) -> int:
        cid = len(self._contributions) + 1
        self._contributions[cid] = Contribution(
            contribution_id=cid,
            name=name,
            type=type,
            amount=amount,
            start_date=start_date,
            end_date=end_date,
            target_amount=target_amount,
            received_amount=Decimal("0") if type == ContributionType.PROJECT else None,
            frequency=frequency,
            created_at=self._clock(),
        )
        return cid

    def update_contribution(self, contribution_id: int, **fields) -> bool:
        c = self._contributions.get(int(contribution_id))
        if not c:
            return False
        self._contributions[c.contribution_id] = replace(c, **fields)
        return True

    def create_payment(
        self, *, member_id, contribution_id, amount, period_year, period_month, recorded_by, add_to_received=False
    ) -> int:
        pid = len(self.payments) + 1
        self.payments.append(
            Payment(
                payment_id=pid,
                member_id=member_id,
                contribution_id=contribution_id,
                amount=Decimal(str(amount)),
                paid_at=self._clock(),
                period_year=period_year,
                period_month=period_month,
                recorded_by=recorded_by,
            )
        )
        if add_to_received:
            c = self._contributions[int(contribution_id)]
            self._contributions[c.contribution_id] = replace(c, received_amount=(c.received_amount or 0) + amount)
        return pid

    def get_payment(self, payment_id: int):
        return next((p for p in self.payments if p.payment_id == payment_id), None)

    def list_payments(self, *, member_id=None, contribution_id=None, period_year=None, period_month=None, limit=None):
        rows = [
            p
            for p in self.payments
            if (member_id is None or p.member_id == member_id)
            and (contribution_id is None or p.contribution_id == contribution_id)
            and (period_year is None or p.period_year == period_year)
            and (period_month is None or p.period_month == period_month)
        ]
        rows.sort(key=lambda p: (p.paid_at, p.payment_id), reverse=True)
        return rows if limit is None else rows[:limit]


class _ApprovalStore:
    """Shared storage for expenses and transfers, with an atomic check-and-set."""

    id_field = ""

    def __init__(self, clock: FakeClock):
        self._clock = clock
        self._lock = threading.Lock()
        self.items: dict[int, object] = {}

    def get_by_id(self, entity_id: int):
        return self.items.get(int(entity_id))

    def _box_ids(self, item) -> set:
        return {item.cash_box_id}

    def list(self, *, cash_box_id=None, status=None, limit=None):
        rows = [
            i
            for i in self.items.values()
            if (status is None or i.status == status) and (cash_box_id is None or cash_box_id in self._box_ids(i))
        ]
        rows.sort(key=lambda i: (i.created_at, getattr(i, self.id_field)), reverse=True)
        return rows if limit is None else rows[:limit]

    def count_by_status(self, status: ApprovalStatus) -> int:
        return sum(1 for i in self.items.values() if i.status == status)

    def apply_transition(self, entity_id, *, from_status, to_status, actor_id, reject_reason=None) -> bool:
        with self._lock:
            item = self.items.get(int(entity_id))
            if item is None or item.status != from_status:
                return False
            now = self._clock()
            if to_status == ApprovalStatus.PENDING_COMMISSIONER:
                changes = dict(treasurer_approved_by=actor_id, treasurer_approved_at=now)
            elif to_status == ApprovalStatus.APPROVED:
                changes = dict(commissioner_approved_by=actor_id, commissioner_approved_at=now)
            else:
                changes = dict(rejected_by=actor_id, rejected_at=now, reject_reason=reject_reason)
            self.items[int(entity_id)] = replace(item, status=to_status, updated_at=now, **changes)
            return True


class InMemoryExpenses(_ApprovalStore):
    id_field = "expense_id"

    def create(self, *, amount, description, expense_date, cash_box_id, beneficiary, requested_by) -> int:
        eid = len(self.items) + 1
        self.items[eid] = Expense(
            expense_id=eid,
            amount=amount,
            description=description,
            expense_date=expense_date,
            status=ApprovalStatus.PENDING_TREASURER,
            requested_by=requested_by,
            created_at=self._clock(),
            cash_box_id=cash_box_id,
            beneficiary=beneficiary,
        )
        return eid


class InMemoryTransfers(_ApprovalStore):
    id_field = "transfer_id"

    def _box_ids(self, item) -> set:
        return {item.from_cash_box_id, item.to_cash_box_id}

    def create(self, *, type, amount, description, from_cash_box_id, to_cash_box_id, requested_by) -> int:
        tid = len(self.items) + 1
        self.items[tid] = CashBoxTransfer(
            transfer_id=tid,
            type=type,
            amount=amount,
            status=ApprovalStatus.PENDING_TREASURER,
            requested_by=requested_by,
            created_at=self._clock(),
            description=description,
            from_cash_box_id=from_cash_box_id,
            to_cash_box_id=to_cash_box_id,
        )
        return tid


class InMemoryCashBoxes:
    def __init__(self, clock: FakeClock, expenses: InMemoryExpenses, transfers: InMemoryTransfers):
        self._clock = clock
        self._expenses = expenses
        self._transfers = transfers
        self._boxes: dict[int, CashBox] = {}
        self._id = 0

    def list_all(self):
        return sorted(self._boxes.values(), key=lambda b: (b.order, b.cash_box_id))

    def get_by_id(self, cash_box_id: int):
        return self._boxes.get(int(cash_box_id))

    def create(self, *, name, description, order, is_default) -> int:
        self._id += 1
        if is_default:
            self._clear_default()
        self._boxes[self._id] = CashBox(
            cash_box_id=self._id,
            name=name,
            description=description,
            order=order,
            is_default=is_default,
            created_at=self._clock(),
        )
        return self._id

    def _clear_default(self) -> None:
        for box_id, box in list(self._boxes.items()):
            if box.is_default:
                self._boxes[box_id] = replace(box, is_default=False)

    def update(self, cash_box_id: int, **fields) -> bool:
        box = self._boxes.get(int(cash_box_id))
        if not box:
            return False
        self._boxes[box.cash_box_id] = replace(box, **fields)
        return True

    def set_default(self, cash_box_id: int) -> bool:
        if int(cash_box_id) not in self._boxes:
            return False
        self._clear_default()
        return self.update(cash_box_id, is_default=True)

    def delete_and_reassign(self, cash_box_id: int, *, default_id: int) -> bool:
        box = self._boxes.get(int(cash_box_id))
        if box is None or box.is_default:
            raise ConflictError("La caisse n'a pas pu être supprimée")
        for eid, e in list(self._expenses.items.items()):
            if e.cash_box_id == cash_box_id:
                self._expenses.items[eid] = replace(e, cash_box_id=default_id)
        for tid, t in list(self._transfers.items.items()):
            if t.from_cash_box_id == cash_box_id:
                t = replace(t, from_cash_box_id=default_id)
            if t.to_cash_box_id == cash_box_id:
                t = replace(t, to_cash_box_id=default_id)
            self._transfers.items[tid] = t
        del self._boxes[box.cash_box_id]
        return True


class InMemoryNotifications:
    def __init__(self, clock: FakeClock, members: InMemoryMembers):
        self._clock = clock
        self._members = members
        self.items: dict[int, Notification] = {}
        self.logs: list[NotificationLog] = []

    def create(self, *, member_id, title, message) -> int:
        nid = len(self.items) + 1
        self.items[nid] = Notification(
            notification_id=nid, member_id=member_id, title=title, message=message, created_at=self._clock()
        )
        return nid

    def create_many(self, *, member_ids, title, message) -> int:
        ids = list(member_ids)
        for mid in ids:
            self.create(member_id=mid, title=title, message=message)
        return len(ids)

    def get_by_id(self, notification_id: int):
        return self.items.get(int(notification_id))

    def for_member(self, member_id: int) -> list[Notification]:
        return [n for n in self.items.values() if n.member_id == member_id]

    def list_for_member(self, member_id: int, *, limit: int):
        return sorted(self.for_member(member_id), key=lambda n: n.notification_id, reverse=True)[:limit]

    def count_unread(self, member_id: int) -> int:
        return sum(1 for n in self.for_member(member_id) if not n.read)

    def mark_read(self, notification_id: int, *, member_id: int) -> bool:
        n = self.items.get(int(notification_id))
        if not n or n.member_id != member_id:
            return False
        self.items[n.notification_id] = replace(n, read=True)
        return True

    def mark_all_read(self, member_id: int) -> int:
        count = 0
        for n in self.for_member(member_id):
            if not n.read:
                self.items[n.notification_id] = replace(n, read=True)
                count += 1
        return count

    def add_logs(self, *, member_ids, type, payload) -> int:
        ids = list(member_ids)
        for mid in ids:
            m = self._members.get_by_id(mid)
            self.logs.append(
                NotificationLog(
                    log_id=len(self.logs) + 1,
                    member_id=mid,
                    channel=NotificationChannel.IN_APP,
                    type=type,
                    payload=payload,
                    sent_at=self._clock(),
                    member=LogMember(m.member_id, m.first_name, m.last_name, m.phone) if m else None,
                )
            )
        return len(ids)

    def list_logs(self, *, member_id=None, limit: int):
        rows = [log for log in self.logs if member_id is None or log.member_id == member_id]
        return sorted(rows, key=lambda log: (log.sent_at, log.log_id), reverse=True)[:limit]


class InMemoryActivities:
    def __init__(self, clock: FakeClock, members: InMemoryMembers):
        self._clock = clock
        self._members = members
        self.activities: dict[int, Activity] = {}
        self.announcements: dict[int, Announcement] = {}
        self.photos: dict[int, Photo] = {}

    def list_activities(self):
        return sorted(self.activities.values(), key=lambda a: (a.date, a.activity_id), reverse=True)

    def get_activity(self, activity_id: int):
        return self.activities.get(int(activity_id))

    def create_activity(self, *, type, title, description, date, end_date, result, created_by) -> int:
        aid = len(self.activities) + 1
        self.activities[aid] = Activity(
            activity_id=aid,
            type=type,
            title=title,
            date=date,
            created_at=self._clock(),
            description=description,
            end_date=end_date,
            result=result,
            created_by=created_by,
        )
        return aid

    def list_announcements(self):
        return sorted(self.announcements.values(), key=lambda a: a.announcement_id, reverse=True)

    def get_announcement(self, announcement_id: int):
        return self.announcements.get(int(announcement_id))

    def create_announcement(self, *, title, content, author_id) -> int:
        aid = len(self.announcements) + 1
        author = self._members.get_by_id(author_id)
        self.announcements[aid] = Announcement(
            announcement_id=aid,
            title=title,
            content=content,
            created_at=self._clock(),
            author=AnnouncementAuthor(author.member_id, author.first_name, author.last_name) if author else None,
        )
        return aid

    def count_created_since(self, since: datetime) -> int:
        items = list(self.activities.values()) + list(self.announcements.values())
        return sum(1 for i in items if i.created_at > since)

    def list_photos(self, activity_id: int):
        return sorted(
            (p for p in self.photos.values() if p.activity_id == activity_id), key=lambda p: (p.created_at, p.photo_id)
        )

    def get_photo(self, photo_id: int):
        return self.photos.get(int(photo_id))

    def create_photo(self, *, url, caption, activity_id, uploaded_by) -> int:
        pid = len(self.photos) + 1
        self.photos[pid] = Photo(
            photo_id=pid,
            url=url,
            caption=caption,
            activity_id=activity_id,
            uploaded_by=uploaded_by,
            created_at=self._clock(),
        )
        return pid


def principal_of(member: Member) -> Principal:
    return Principal(member_id=member.member_id, role=member.role, is_suspended=member.is_suspended)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 15, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def repos(clock):
    members = InMemoryMembers(clock)
    contributions = InMemoryContributions(clock)
    members.contributions = contributions
    expenses = InMemoryExpenses(clock)
    transfers = InMemoryTransfers(clock)
    return SimpleNamespace(
        members=members,
        contributions=contributions,
        expenses=expenses,
        transfers=transfers,
        boxes=InMemoryCashBoxes(clock, expenses, transfers),
        notifications=InMemoryNotifications(clock, members),
        activities=InMemoryActivities(clock, members),
    )


@pytest.fixture
def container(repos, clock):
    return assemble(
        members_repo=repos.members,
        contributions_repo=repos.contributions,
        cash_boxes_repo=repos.boxes,
        expenses_repo=repos.expenses,
        transfers_repo=repos.transfers,
        notifications_repo=repos.notifications,
        activities_repo=repos.activities,
        clock=clock,
    )


@pytest.fixture
def make_member(repos):
    counter = {"n": 0}

    def _make(
        role: Role = Role.PLAYER,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        created_at: datetime = datetime(2023, 6, 1),
        is_suspended: bool = False,
        reactivated_at: Optional[datetime] = None,
        password: str = "secret123",
    ) -> Member:
        counter["n"] += 1
        n = counter["n"]
        return repos.members.add(
            Member(
                member_id=100 + n,
                phone=f"07000000{n:02d}",
                first_name=first_name or f"Prenom{n}",
                last_name=last_name or f"Nom{n:02d}",
                role=role,
                password_hash=generate_password_hash(password),
                is_suspended=is_suspended,
                reactivated_at=reactivated_at,
                profile_completed=True,
                created_at=created_at,
            )
        )

    return _make


@pytest.fixture
def club(make_member):
    """The bureau members most scenarios need."""
    admin = make_member(Role.ADMIN, first_name="Ada", last_name="Admin")
    treasurer = make_member(Role.TREASURER, first_name="Tom", last_name="Tresorier")
    commissioner = make_member(Role.COMMISSIONER, first_name="Carla", last_name="Commissaire")
    player = make_member(Role.PLAYER, first_name="Paul", last_name="Joueur")
    return SimpleNamespace(
        admin=admin,
        treasurer=treasurer,
        commissioner=commissioner,
        player=player,
        as_admin=principal_of(admin),
        as_treasurer=principal_of(treasurer),
        as_commissioner=principal_of(commissioner),
        as_player=principal_of(player),
    )


@pytest.fixture
def monthly(container, club):
    return container.contribution_service.create_contribution(
        club.as_admin,
        name="Cotisation mensuelle",
        type="MONTHLY",
        amount=5000,
        start_date=date(2023, 1, 1),
    )


@pytest.fixture
def default_box(container, club):
    return container.caisse_service.create_box(club.as_admin, name="Caisse principale")
