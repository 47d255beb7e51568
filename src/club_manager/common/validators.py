from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str, *, field: Optional[str] = None) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} est requis", field=field)
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int, *, field: Optional[str] = None) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} : {min_len} caractères minimum", field=field)
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int, *, field: Optional[str] = None) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} : {max_len} caractères maximum", field=field)
    return value


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def require_id(value: Any, field_name: str, *, field: Optional[str] = None) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} invalide", field=field)
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} est requis", field=field)
    if ident <= 0:
        raise ValidationError(f"{field_name} invalide", field=field)
    return ident


def require_bool(value: Any, field_name: str, *, field: Optional[str] = None) -> bool:
    if isinstance(value, bool):
        return value
    raise ValidationError(f"{field_name} doit valoir true ou false", field=field)


def require_positive_amount(value: Any, field_name: str = "Montant", *, field: str = "amount") -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field_name} invalide", field=field)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field_name} doit être strictement positif", field=field)
    return amount


def require_period(year: Any, month: Any) -> tuple[int, int]:
    try:
        y = int(year)
        m = int(month)
    except (TypeError, ValueError):
        raise ValidationError("Période invalide", field="periodMonth")
    if not 1 <= m <= 12:
        raise ValidationError("Le mois doit être compris entre 1 et 12", field="periodMonth")
    if y < 2000 or y > 2100:
        raise ValidationError("Année invalide", field="periodYear")
    return y, m


def require_date(value: Any, field_name: str, *, field: Optional[str] = None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value or "")[:10], "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field_name} invalide (AAAA-MM-JJ)", field=field)


def clamp_limit(value: Any, default: int, maximum: int) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, maximum)
