import re
from datetime import date, datetime, timezone

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp, tolerating ``Z`` and nanosecond fractions."""
    cleaned = _FRACTION_RE.sub(r".\1", value.strip().replace("Z", "+00:00"))
    parsed = datetime.fromisoformat(cleaned)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_calendar_date(value: str | date | datetime) -> date:
    """
    Normalize a wire date to a calendar date.

    Accepts ``YYYY-MM-DD`` or a full ISO-8601 datetime; only the date part of a
    datetime is kept. Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")
    text = value.strip()
    if not text:
        raise ValueError("Date must not be empty")
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_timestamp(text).date()


def date_to_timestamp(value: date) -> str:
    return f"{value.isoformat()}T00:00:00Z"
