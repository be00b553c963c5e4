from __future__ import annotations

import re
from datetime import date, datetime, timezone

_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are stored without timezone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email or ""))


def clean_str(value) -> str | None:
    """Strip a form/JSON string; empty becomes None."""
    if value is None:
        return None
    return str(value).strip() or None


def clean_str_list(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [str(v).strip() for v in value if str(v).strip()]


def parse_bool(value, default: bool | None = None) -> bool | None:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    raw = str(value).strip().lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    return default


def parse_date(s) -> date | None:
    """Parse YYYY-MM-DD (or a full ISO timestamp) into a date."""
    if s is None:
        return None
    if isinstance(s, datetime):
        return s.date()
    if isinstance(s, date):
        return s
    s = str(s).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def min_length(payload: dict, field: str, n: int, label: str, *, partial: bool = False) -> str | None:
    """Return an error message when a required string is shorter than ``n``."""
    if partial and field not in payload:
        return None
    value = payload.get(field)
    if not isinstance(value, str) or len(value.strip()) < n:
        if n <= 1:
            return f"{label} is required."
        return f"{label} must be at least {n} characters."
    return None


def string_list(payload: dict, field: str, label: str, *, minimum: int = 0, partial: bool = False) -> str | None:
    if partial and field not in payload:
        return None
    value = payload.get(field)
    if value is None:
        value = []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return f"{label} must be a list of strings."
    if len([v for v in value if v.strip()]) < minimum:
        return f"{label} must include at least {minimum} item(s)."
    return None
