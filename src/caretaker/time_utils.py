"""Time zone helpers for local wall-clock scheduling."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tzlocal import get_localzone


def get_local_timezone(name: str | None = None) -> ZoneInfo:
    """Return the named IANA timezone, or the system timezone when unset.

    The system timezone is resolved to its IANA zone rather than the current
    UTC offset, so daylight saving changes apply while the process runs.
    """
    if not name:
        return get_localzone()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Invalid timezone: {name}") from exc


def to_local(value: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to *tz* (system timezone by default); naive values are taken as local."""
    local_tz = tz or get_local_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=local_tz)
    return value.astimezone(local_tz)


def local_now(tz: ZoneInfo | None = None) -> datetime:
    """Return the current time as an aware datetime in *tz*."""
    return datetime.now(tz or get_local_timezone())


def to_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC; naive values are taken as system local time."""
    if value.tzinfo is None:
        value = to_local(value)
    return value.astimezone(timezone.utc)
