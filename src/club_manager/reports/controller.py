from __future__ import annotations

from flask import Flask

from ..common.web import arg_int, current_principal, ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def principal():
        return current_principal(container.auth_service)

    @app.route("/reports/monthly", methods=["GET"], endpoint="reports_monthly")
    def monthly():
        return ok(container.report_service.monthly(principal(), year=arg_int("year"), month=arg_int("month")))

    @app.route("/reports/annual", methods=["GET"], endpoint="reports_annual")
    def annual():
        return ok(container.report_service.annual(principal(), year=arg_int("year")))
