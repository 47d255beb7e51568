from __future__ import annotations

from flask import Flask, request

from ..common.validators import clamp_limit
from ..common.web import arg_int, body, current_principal, ok
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT


def register(app: Flask, container: Container) -> None:
    def principal():
        return current_principal(container.auth_service)

    def limit_arg():
        return clamp_limit(request.args.get("limit"), DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)

    @app.route("/contributions", methods=["GET"], endpoint="contributions_list")
    def list_contributions():
        return ok(container.contribution_service.list_contributions(principal()))

    @app.route("/contributions", methods=["POST"], endpoint="contributions_create")
    def create_contribution():
        data = body()
        contribution = container.contribution_service.create_contribution(
            principal(),
            name=data.get("name"),
            type=data.get("type"),
            amount=data.get("amount"),
            start_date=data.get("start_date"),
            end_date=data.get("end_date"),
            target_amount=data.get("target_amount"),
            frequency=data.get("frequency"),
        )
        return ok(contribution, 201)

    @app.route("/contributions/monthly", methods=["GET"], endpoint="contributions_monthly")
    def monthly():
        return ok(container.contribution_service.get_monthly(principal()))

    @app.route("/contributions/arrears", methods=["GET"], endpoint="contributions_arrears")
    def arrears():
        return ok(
            container.contribution_service.get_arrears(principal(), year=arg_int("year"), month=arg_int("month"))
        )

    @app.route("/contributions/apply-suspensions", methods=["POST"], endpoint="contributions_apply_suspensions")
    def apply_suspensions():
        report = container.suspension_service.apply_suspensions_for(principal())
        return ok(report)

    @app.route("/contributions/payments", methods=["GET"], endpoint="contributions_payments")
    def list_payments():
        payments = container.contribution_service.list_payments(
            principal(),
            member_id=arg_int("memberId"),
            contribution_id=arg_int("contributionId"),
            year=arg_int("year"),
            month=arg_int("month"),
            limit=limit_arg(),
        )
        return ok(payments)

    @app.route("/contributions/payments", methods=["POST"], endpoint="contributions_record_payment")
    def record_payment():
        data = body()
        payment = container.contribution_service.record_payment(
            principal(),
            member_id=data.get("member_id"),
            contribution_id=data.get("contribution_id"),
            amount=data.get("amount"),
            period_year=data.get("period_year"),
            period_month=data.get("period_month"),
        )
        return ok(payment, 201)

    @app.route("/contributions/payments/me", methods=["POST"], endpoint="contributions_pay_own")
    def pay_own_dues():
        data = body()
        payment = container.contribution_service.record_self_payment(
            principal(),
            contribution_id=data.get("contribution_id"),
            amount=data.get("amount"),
            period_year=data.get("period_year"),
            period_month=data.get("period_month"),
        )
        return ok(payment, 201)

    @app.route("/contributions/history/summary", methods=["GET"], endpoint="contributions_history_summary")
    def history_summary():
        return ok(
            container.contribution_service.history_summary(principal(), year=arg_int("year"), month=arg_int("month"))
        )

    @app.route("/contributions/history/member/<int:member_id>", methods=["GET"], endpoint="contributions_member_history")
    def member_history(member_id: int):
        return ok(container.contribution_service.member_history(principal(), member_id))

    @app.route("/contributions/me", methods=["GET"], endpoint="contributions_me")
    def my_history():
        p = principal()
        return ok(container.contribution_service.member_history(p, p.member_id))

    @app.route("/contributions/me/unpaid-months", methods=["GET"], endpoint="contributions_unpaid_months")
    def unpaid_months():
        return ok(container.contribution_service.get_unpaid_months(principal()))

    @app.route("/contributions/<int:contribution_id>", methods=["GET"], endpoint="contributions_get")
    def get_contribution(contribution_id: int):
        return ok(container.contribution_service.get_contribution(principal(), contribution_id))

    @app.route("/contributions/<int:contribution_id>", methods=["PATCH"], endpoint="contributions_update")
    def update_contribution(contribution_id: int):
        return ok(container.contribution_service.update_contribution(principal(), contribution_id, body()))
