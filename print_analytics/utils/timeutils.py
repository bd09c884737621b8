"""
UTC timestamp helpers shared by both storage backends
"""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Naive UTC now with millisecond precision (what SQLite round-trips)"""
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec='milliseconds') + 'Z'


def parse_iso(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO timestamp into naive UTC; datetimes pass through"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def monotonic_update(previous: Union[str, datetime, None]) -> datetime:
    """Now, but never earlier than the previous timestamp"""
    now = utc_now()
    prior = parse_iso(previous)
    if prior is not None and prior > now:
        return prior
    return now
