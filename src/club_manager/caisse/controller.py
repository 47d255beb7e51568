from __future__ import annotations

from flask import Flask, request

from ..common.validators import clamp_limit
from ..common.web import arg_int, badge_count, body, current_principal, ok
from ..container import Container
from ..core.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from .model import PendingCount


def register(app: Flask, container: Container) -> None:
    service = container.caisse_service

    def principal():
        return current_principal(container.auth_service)

    def limit_arg():
        return clamp_limit(request.args.get("limit"), DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)

    @app.route("/caisse", methods=["GET"], endpoint="caisse_summary")
    def summary():
        return ok(service.summary(principal()))

    @app.route("/caisse/livre", methods=["GET"], endpoint="caisse_ledger")
    def ledger():
        limit = request.args.get("limit")
        return ok(service.ledger(principal(), limit=clamp_limit(limit, MAX_LIST_LIMIT, MAX_LIST_LIMIT)))

    @app.route("/caisse/pending-count", methods=["GET"], endpoint="caisse_pending_count")
    def pending_count():
        p = principal()
        return ok(badge_count(lambda: service.pending_count(p), PendingCount(0, 0)))

    # -------- Cash boxes --------
    @app.route("/caisse/boxes", methods=["GET"], endpoint="caisse_boxes_list")
    def list_boxes():
        return ok(service.list_boxes(principal()))

    @app.route("/caisse/boxes", methods=["POST"], endpoint="caisse_boxes_create")
    def create_box():
        data = body()
        box = service.create_box(
            principal(),
            name=data.get("name"),
            description=data.get("description"),
            order=data.get("order"),
            is_default=bool(data.get("is_default")),
        )
        return ok(box, 201)

    @app.route("/caisse/boxes/<int:box_id>", methods=["PATCH"], endpoint="caisse_boxes_update")
    def update_box(box_id: int):
        return ok(service.update_box(principal(), box_id, body()))

    @app.route("/caisse/boxes/<int:box_id>", methods=["DELETE"], endpoint="caisse_boxes_delete")
    def delete_box(box_id: int):
        service.delete_box(principal(), box_id)
        return ok({"ok": True})

    # -------- Expenses --------
    @app.route("/caisse/expenses", methods=["GET"], endpoint="caisse_expenses_list")
    def list_expenses():
        expenses = service.list_expenses(
            principal(),
            cash_box_id=arg_int("cashBoxId"),
            status=request.args.get("status"),
            limit=limit_arg(),
        )
        return ok(expenses)

    @app.route("/caisse/expenses", methods=["POST"], endpoint="caisse_expenses_create")
    def create_expense():
        data = body()
        expense = service.create_expense(
            principal(),
            amount=data.get("amount"),
            description=data.get("description"),
            expense_date=data.get("expense_date"),
            cash_box_id=data.get("cash_box_id"),
            beneficiary=data.get("beneficiary"),
        )
        return ok(expense, 201)

    @app.route("/caisse/expenses/<int:expense_id>", methods=["GET"], endpoint="caisse_expenses_get")
    def get_expense(expense_id: int):
        return ok(service.get_expense(principal(), expense_id))

    @app.route("/caisse/expenses/<int:expense_id>/validate-treasurer", methods=["PATCH"], endpoint="caisse_expenses_validate_treasurer")
    def validate_expense_treasurer(expense_id: int):
        return ok(service.validate_expense_treasurer(principal(), expense_id))

    @app.route("/caisse/expenses/<int:expense_id>/validate-commissioner", methods=["PATCH"], endpoint="caisse_expenses_validate_commissioner")
    def validate_expense_commissioner(expense_id: int):
        return ok(service.validate_expense_commissioner(principal(), expense_id))

    @app.route("/caisse/expenses/<int:expense_id>/reject", methods=["PATCH"], endpoint="caisse_expenses_reject")
    def reject_expense(expense_id: int):
        return ok(service.reject_expense(principal(), expense_id, body().get("motif")))

    # -------- Transfers --------
    @app.route("/caisse/transfers", methods=["GET"], endpoint="caisse_transfers_list")
    def list_transfers():
        transfers = service.list_transfers(
            principal(),
            cash_box_id=arg_int("cashBoxId"),
            status=request.args.get("status"),
            limit=limit_arg(),
        )
        return ok(transfers)

    @app.route("/caisse/transfers", methods=["POST"], endpoint="caisse_transfers_create")
    def create_transfer():
        data = body()
        transfer = service.create_transfer(
            principal(),
            type=data.get("type"),
            cash_box_id=data.get("cash_box_id"),
            amount=data.get("amount"),
            description=data.get("description"),
        )
        return ok(transfer, 201)

    @app.route("/caisse/transfers/<int:transfer_id>", methods=["GET"], endpoint="caisse_transfers_get")
    def get_transfer(transfer_id: int):
        return ok(service.get_transfer(principal(), transfer_id))

    @app.route("/caisse/transfers/<int:transfer_id>/validate-treasurer", methods=["PATCH"], endpoint="caisse_transfers_validate_treasurer")
    def validate_transfer_treasurer(transfer_id: int):
        return ok(service.validate_transfer_treasurer(principal(), transfer_id))

    @app.route("/caisse/transfers/<int:transfer_id>/validate-commissioner", methods=["PATCH"], endpoint="caisse_transfers_validate_commissioner")
    def validate_transfer_commissioner(transfer_id: int):
        return ok(service.validate_transfer_commissioner(principal(), transfer_id))

    @app.route("/caisse/transfers/<int:transfer_id>/reject", methods=["PATCH"], endpoint="caisse_transfers_reject")
    def reject_transfer(transfer_id: int):
        return ok(service.reject_transfer(principal(), transfer_id, body().get("motif")))
