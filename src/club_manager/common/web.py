"""Helpers shared by the JSON controllers."""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Optional

from flask import jsonify, request, session

from ..auth.policy import Principal
from ..core.exceptions import ValidationError
from .serialization import to_json

logger = logging.getLogger(__name__)

SESSION_KEY = "member_id"

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def snake(name: str) -> str:
    return _CAMEL.sub("_", name).lower()


def body() -> dict:
    """JSON request body with snake_case keys (empty dict when absent)."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Corps de requête invalide")
    return {snake(k): v for k, v in data.items()}


def arg_int(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Paramètre {name} invalide", field=name)


def ok(value: Any = None, status: int = 200):
    return jsonify(to_json(value)), status


def current_principal(auth_service) -> Principal:
    """Reload the member on every request so suspension state is fresh."""
    return auth_service.principal_for(session.get(SESSION_KEY))


def badge_count(fn: Callable[[], Any], default: Any = 0) -> Any:
    """Counters polled by the UI never fail the request."""
    try:
        return fn()
    except Exception:
        logger.exception("badge count failed, returning %r", default)
        return default
