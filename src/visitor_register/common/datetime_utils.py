from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

END_OF_DAY = time(23, 59, 59, 999000)


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_utc() -> datetime:
    """Current UTC time as a naive datetime, the form stored in DATETIME(3) columns.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into naive UTC, or None when unparsable.

    A trailing ``Z`` or an explicit offset is honoured; naive input is taken as UTC.
    """

    text = (value or "").strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        return None
    return parsed


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, END_OF_DAY)


def to_iso_utc(value: Optional[datetime]) -> Optional[str]:
    """Render a stored naive-UTC datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


def years_ago(now: datetime, *, days: int) -> datetime:
    return now - timedelta(days=days)
