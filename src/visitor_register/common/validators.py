from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required.")
    return str(value).strip()


def parse_visitor_id(value: Any, message: str = "A valid Visitor ID is required.") -> int:
    """Accept ints and digit strings; anything else is a ValidationError."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(message)
    try:
        visitor_id = int(str(value).strip())
    except ValueError:
        raise ValidationError(message)
    if visitor_id <= 0:
        raise ValidationError(message)
    return visitor_id


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
