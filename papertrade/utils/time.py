"""Time utilities (UTC for quote math, IST for display)."""

from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def now_utc() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """
    Attach a timezone to naive datetimes.

    Quote timestamps from upstream feeds are sometimes naive; they are
    interpreted as UTC so that age comparisons never mix naive and aware values.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=naive_assumed_tz)
    return dt


def to_ist(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Convert datetime to IST timezone-aware value."""
    return ensure_aware(dt, naive_assumed_tz).astimezone(IST)


def to_ist_iso(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> str:
    """Convert datetime to IST and return ISO string with offset."""
    return to_ist(dt, naive_assumed_tz=naive_assumed_tz).isoformat()
