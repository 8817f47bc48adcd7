"""Time source and "HH:MM" helpers.

Every timestamp the booking code compares or stores is a naive wall-clock
datetime in the marketplace timezone, the same frame job dates and start/end
times are entered in. Aware datetimes coming from callers are converted with
``to_local``.
"""

import re
from datetime import date, datetime, time, timezone, tzinfo
from zoneinfo import ZoneInfo

from .errors import ValidationError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")


def zone_for(name: str) -> tzinfo:
    """tzinfo for an IANA name; raises ZoneInfoNotFoundError or ValueError when unknown."""
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class Clock:
    """Supplies ``now()`` for one marketplace timezone."""

    def __init__(self, tz_name: str = "UTC"):
        self.tz_name = tz_name
        self.tz = zone_for(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None, microsecond=0)

    def to_local(self, value: datetime) -> datetime:
        return to_local(value, self.tz)


def to_local(value: datetime, tz: tzinfo) -> datetime:
    """Drop tzinfo after converting an aware datetime into ``tz``; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone(tz).replace(tzinfo=None)


def parse_hhmm(value: str, field_name: str = "time") -> time:
    """Parse "H:MM" / "HH:MM" into a ``time``; raises ValidationError."""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise ValidationError(f"{field_name} must be in HH:MM format")
    return time(int(match.group(1)), int(match.group(2)))


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def combine(day: date, hhmm: str) -> datetime:
    """Datetime at which a job scheduled on ``day`` at ``hhmm`` happens."""
    return datetime.combine(day, parse_hhmm(hhmm))
