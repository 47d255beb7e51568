from __future__ import annotations

from flask import Flask, request

from ..common.web import badge_count, body, current_principal, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.notification_service

    def principal():
        return current_principal(container.auth_service)

    @app.route("/notifications/in-app", methods=["GET"], endpoint="notifications_list")
    def list_notifications():
        return ok(service.list(principal(), limit=request.args.get("limit")))

    @app.route("/notifications/in-app/count", methods=["GET"], endpoint="notifications_unread_count")
    def unread_count():
        p = principal()
        return ok({"count": badge_count(lambda: service.unread_count(p))})

    @app.route("/notifications/in-app/<int:notification_id>/read", methods=["PATCH"], endpoint="notifications_mark_read")
    def mark_read(notification_id: int):
        service.mark_as_read(principal(), notification_id)
        return ok({"ok": True})

    @app.route("/notifications/in-app/read-all", methods=["PATCH"], endpoint="notifications_mark_all_read")
    def mark_all_read():
        return ok({"ok": True, "updated": service.mark_all_as_read(principal())})

    @app.route("/notifications/remind-cotisation", methods=["POST"], endpoint="notifications_remind_cotisation")
    def remind_cotisation():
        data = body()
        service.remind_cotisation(principal(), data.get("member_id"), data.get("period_label"))
        return ok({"ok": True, "message": "Rappel envoyé"})

    @app.route("/notifications/remind-all-arrears", methods=["POST"], endpoint="notifications_remind_all_arrears")
    def remind_all_arrears():
        data = body()
        report = service.remind_all_arrears(
            principal(),
            message=data.get("message"),
            title=data.get("title"),
            year=data.get("year"),
            month=data.get("month"),
        )
        return ok(report)

    @app.route("/notifications/logs", methods=["GET"], endpoint="notifications_logs")
    def list_logs():
        return ok(
            service.list_logs(principal(), member_id=request.args.get("memberId"), limit=request.args.get("limit"))
        )
