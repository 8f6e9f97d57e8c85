"""Timestamp helpers shared by the record codec and the pipeline stages."""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# "2006-01-02 15:04:05" with optional fractional seconds
_STARTED_AT = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?$"
)


def parse_started_at_millis(text: str) -> Optional[int]:
    """Parse a ``startedAt`` value into epoch milliseconds (UTC).

    Fractional seconds are optional and truncated to milliseconds. Returns
    None when the value cannot be parsed.
    """
    match = _STARTED_AT.match(text.strip()) if text else None
    if not match:
        return None
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    try:
        moment = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        return None
    frac = match.group(7) or ""
    millis = int((frac + "000")[:3])
    return (moment - EPOCH) // timedelta(milliseconds=1) + millis


def datetime_from_nanos(nanos: int, tz=timezone.utc) -> datetime:
    """Build an aware datetime from epoch nanoseconds (truncated to microseconds)."""
    seconds, remainder = divmod(nanos, 1_000_000_000)
    return (EPOCH + timedelta(seconds=seconds, microseconds=remainder // 1000)).astimezone(tz)


def datetime_to_nanos(moment: datetime) -> int:
    """Epoch nanoseconds of an aware datetime."""
    delta = moment - EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1000


def format_millis(moment: datetime) -> str:
    """Format as ``YYYY-MM-DD HH:MM:SS.mmm`` in the datetime's own offset."""
    return f"{moment:%Y-%m-%d %H:%M:%S}.{moment.microsecond // 1000:03d}"
