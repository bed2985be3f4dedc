from datetime import datetime, timezone
from typing import Optional

from dotask.core.errors import InvalidInput


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite rend des datetimes naïfs: on les considère en UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: str, field: str = "date") -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix accepted) into an aware UTC datetime."""
    if not value or not value.strip():
        raise InvalidInput(f"{field} is required")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidInput(f"invalid {field}: {value!r} is not an ISO-8601 timestamp")
    return as_utc(parsed)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")
