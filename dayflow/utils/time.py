from __future__ import annotations

from datetime import datetime, timezone
import zoneinfo
from zoneinfo import ZoneInfoNotFoundError

DEFAULT_TZ = "UTC"


def get_tz(tz: str = DEFAULT_TZ) -> zoneinfo.ZoneInfo:
    try:
        return zoneinfo.ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        return zoneinfo.ZoneInfo(DEFAULT_TZ)


def now_in_tz(tz: str = DEFAULT_TZ) -> datetime:
    return datetime.now(tz=get_tz(tz))


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso_instant(dt: datetime) -> str:
    """Render an instant as UTC with a ``Z`` suffix."""
    utc = ensure_utc(dt)
    return utc.isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return ensure_utc(dt)
