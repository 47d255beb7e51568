from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, session
from werkzeug.exceptions import HTTPException

from .activities.controller import register as register_activities
from .caisse.controller import register as register_caisse
from .container import Container, build_container
from .contributions.controller import register as register_contributions
from .core.constants import DEFAULT_SESSION_DAYS
from .core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .database.bootstrap import apply_schema, ensure_admin, ensure_default_cash_box, list_tables
from .members.controller import register as register_members
from .notifications.controller import register as register_notifications
from .reports.controller import register as register_reports
from .settings import get_settings_module

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def _status_for(err: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        status = _status_for(err)
        if status == 401:
            session.clear()
        payload = {"message": str(err), "code": err.code}
        field = getattr(err, "field", None)
        if field:
            payload["field"] = field
        return jsonify(payload), status

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return jsonify({"message": err.description, "code": err.name.upper().replace(" ", "_")}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err: Exception):
        logger.exception("unhandled error")
        return jsonify({"message": "Erreur interne du serveur", "code": "INTERNAL_ERROR"}), 500


def create_app(container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=DEFAULT_SESSION_DAYS)
    app.json.ensure_ascii = False

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)
            logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_admin(db_config, phone=settings.ADMIN_PHONE, password=settings.ADMIN_PASSWORD)
            ensure_default_cash_box(db_config)

        container = build_container(
            db_config=db_config,
            dues_day=int(getattr(settings, "DUES_DAY")),
            grace_hours=int(getattr(settings, "REACTIVATION_GRACE_HOURS")),
            lookback_months=int(getattr(settings, "ARREARS_LOOKBACK_MONTHS")),
        )

    app.extensions["container"] = container
    register_error_handlers(app)

    register_members(app, container)
    register_contributions(app, container)
    register_caisse(app, container)
    register_notifications(app, container)
    register_activities(app, container)
    register_reports(app, container)

    return app
