from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .activities.mysql_activity_repository import MySQLActivityRepository
from .activities.repository import ActivityRepository
from .activities.service import ActivityService
from .caisse.mysql_cash_box_repository import MySQLCashBoxRepository
from .caisse.mysql_expense_repository import MySQLExpenseRepository
from .caisse.mysql_transfer_repository import MySQLTransferRepository
from .caisse.repository import CashBoxRepository, ExpenseRepository, TransferRepository
from .caisse.service import CaisseService
from .common import events
from .common.datetime_utils import now_local
from .contributions.arrears import ArrearsCalculator
from .contributions.mysql_contribution_repository import MySQLContributionRepository
from .contributions.repository import ContributionRepository
from .contributions.service import ContributionService
from .core.constants import ARREARS_LOOKBACK_MONTHS, DUES_DAY, REACTIVATION_GRACE_HOURS
from .database.connection import DatabaseConnection
from .members.mysql_member_repository import MySQLMemberRepository
from .members.repository import MemberRepository
from .members.service import AuthService, MemberService
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.repository import NotificationRepository
from .notifications.service import NotificationService
from .reports.service import ReportService
from .suspension.service import SuspensionService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    bus: events.EventBus

    members_repo: MemberRepository
    contributions_repo: ContributionRepository
    cash_boxes_repo: CashBoxRepository
    expenses_repo: ExpenseRepository
    transfers_repo: TransferRepository
    notifications_repo: NotificationRepository
    activities_repo: ActivityRepository

    auth_service: AuthService
    member_service: MemberService
    contribution_service: ContributionService
    caisse_service: CaisseService
    suspension_service: SuspensionService
    notification_service: NotificationService
    activity_service: ActivityService
    report_service: ReportService


def assemble(
    *,
    members_repo: MemberRepository,
    contributions_repo: ContributionRepository,
    cash_boxes_repo: CashBoxRepository,
    expenses_repo: ExpenseRepository,
    transfers_repo: TransferRepository,
    notifications_repo: NotificationRepository,
    activities_repo: ActivityRepository,
    conn: Optional[DatabaseConnection] = None,
    dues_day: int = DUES_DAY,
    grace_hours: int = REACTIVATION_GRACE_HOURS,
    lookback_months: int = ARREARS_LOOKBACK_MONTHS,
    clock=now_local,
) -> Container:
    """Wire services over the given repositories and connect event subscribers."""
    bus = events.EventBus()
    calculator = ArrearsCalculator(lookback_months=lookback_months)

    auth_service = AuthService(members_repo)
    member_service = MemberService(members_repo, bus=bus, clock=clock)
    contribution_service = ContributionService(
        contributions_repo,
        members_repo,
        calculator=calculator,
        bus=bus,
        clock=clock,
    )
    caisse_service = CaisseService(
        cash_boxes_repo,
        expenses_repo,
        transfers_repo,
        contributions_repo,
        bus=bus,
        clock=clock,
    )
    suspension_service = SuspensionService(
        members_repo,
        contributions_repo,
        member_service,
        calculator=calculator,
        dues_day=dues_day,
        grace_hours=grace_hours,
        clock=clock,
    )
    notification_service = NotificationService(
        notifications_repo,
        members_repo,
        contribution_service,
        grace_hours=grace_hours,
    )
    activity_service = ActivityService(activities_repo, members_repo, clock=clock)
    report_service = ReportService(caisse_service, clock=clock)

    notification_service.subscribe(bus)
    bus.subscribe(events.PAYMENT_RECORDED, suspension_service.on_payment_recorded)

    return Container(
        conn=conn,
        bus=bus,
        members_repo=members_repo,
        contributions_repo=contributions_repo,
        cash_boxes_repo=cash_boxes_repo,
        expenses_repo=expenses_repo,
        transfers_repo=transfers_repo,
        notifications_repo=notifications_repo,
        activities_repo=activities_repo,
        auth_service=auth_service,
        member_service=member_service,
        contribution_service=contribution_service,
        caisse_service=caisse_service,
        suspension_service=suspension_service,
        notification_service=notification_service,
        activity_service=activity_service,
        report_service=report_service,
    )


def build_container(
    *,
    db_config: dict,
    dues_day: int = DUES_DAY,
    grace_hours: int = REACTIVATION_GRACE_HOURS,
    lookback_months: int = ARREARS_LOOKBACK_MONTHS,
) -> Container:
    conn = DatabaseConnection.from_dict(db_config)
    return assemble(
        members_repo=MySQLMemberRepository(conn),
        contributions_repo=MySQLContributionRepository(conn),
        cash_boxes_repo=MySQLCashBoxRepository(conn),
        expenses_repo=MySQLExpenseRepository(conn),
        transfers_repo=MySQLTransferRepository(conn),
        notifications_repo=MySQLNotificationRepository(conn),
        activities_repo=MySQLActivityRepository(conn),
        conn=conn,
        dues_day=dues_day,
        grace_hours=grace_hours,
        lookback_months=lookback_months,
    )
