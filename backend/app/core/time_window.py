"""
Cooldown window arithmetic for the entry anti-spam rule.

All calculations are done on timezone-aware UTC datetimes by plain
subtraction and addition of durations, never on local calendar fields,
so month/year rollovers and DST changes cannot skew the result.
Timestamps may be passed as ISO 8601 strings (a trailing ``Z`` is
accepted) or as ``datetime`` objects; naive datetimes are taken as UTC.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union
from app.core.config import settings

Timestamp = Union[str, datetime]

COOLDOWN_DURATION = timedelta(minutes=settings.ENTRY_COOLDOWN_MINUTES)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MINUTE = timedelta(minutes=1)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Timestamp) -> datetime:
    """Convert an ISO 8601 string or datetime to an aware UTC datetime."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Timestamp) -> str:
    """Format a timestamp as ISO 8601 UTC with milliseconds, e.g. 2026-01-26T14:35:00.000Z."""
    return parse_timestamp(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def retry_after(last_entry_timestamp: Timestamp) -> str:
    """
    Time at which the user may create the next entry.

    Example:
        retry_after("2026-01-26T14:30:00.000Z") -> "2026-01-26T14:35:00.000Z"
    """
    return format_timestamp(parse_timestamp(last_entry_timestamp) + COOLDOWN_DURATION)


def minutes_until_retry(retry_after_timestamp: Timestamp, now: Optional[Timestamp] = None) -> int:
    """
    Whole minutes left until ``retry_after_timestamp``, rounded up.

    Returns 0 once the retry time has been reached. Any positive remainder
    counts as a full minute, so 6 seconds left reports 1.
    """
    current = utcnow() if now is None else parse_timestamp(now)
    remaining = parse_timestamp(retry_after_timestamp) - current
    if remaining <= timedelta(0):
        return 0
    minutes, rest = divmod(remaining, _ONE_MINUTE)
    return minutes + (1 if rest else 0)


def within_cooldown(timestamp_a: Timestamp, timestamp_b: Timestamp) -> bool:
    """True if the two timestamps are strictly less than COOLDOWN_DURATION apart."""
    return abs(parse_timestamp(timestamp_a) - parse_timestamp(timestamp_b)) < COOLDOWN_DURATION


def cooldown_bucket(timestamp: Timestamp) -> datetime:
    """
    Start of the fixed cooldown-sized slot (counted from the Unix epoch) containing ``timestamp``.

    Backs the store-level unique index on entries: two timestamps in the
    same bucket are always within the cooldown of each other.
    """
    moment = parse_timestamp(timestamp)
    return _EPOCH + ((moment - _EPOCH) // COOLDOWN_DURATION) * COOLDOWN_DURATION
