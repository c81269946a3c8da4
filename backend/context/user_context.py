"""
User context sent with every agent message.

Responsibilities:
- Capture where and when the user is (timezone, offset, visible date)
- Serialize it into the flat key space the agent expects

Non-responsibilities:
- No reducer logic
- No HTTP
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from constants import (
    DEFAULT_TIMEZONE,
    USER_CONTEXT_GLANCE_DATE_KEY,
    USER_CONTEXT_LANGUAGE_KEY,
    USER_CONTEXT_OFFSET_KEY,
    USER_CONTEXT_TIMEZONE_KEY,
)
from observability.logger import log_event


@dataclass(frozen=True)
class UserContext:
    """Immutable snapshot of the user's temporal context."""

    timezone: str
    timezone_offset: str
    glance_date: dt.date
    language: str | None = None

    def to_wire(self) -> dict[str, str]:
        """
        Output format:
        {
            "user:timezone": "Europe/Moscow",
            "user:timezone_offset": "+03:00",
            "user:glance_date": "2025-05-01",
            "user:language": "ru"      # only when set
        }
        """
        out = {
            USER_CONTEXT_TIMEZONE_KEY: self.timezone,
            USER_CONTEXT_OFFSET_KEY: self.timezone_offset,
            USER_CONTEXT_GLANCE_DATE_KEY: self.glance_date.isoformat(),
        }
        if self.language:
            out[USER_CONTEXT_LANGUAGE_KEY] = self.language
        return out


def format_offset(offset: dt.timedelta | None) -> str:
    """Render a UTC offset as +HH:MM / -HH:MM."""
    total_minutes = int((offset or dt.timedelta()).total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def resolve_timezone(name: str | None) -> ZoneInfo:
    """ZoneInfo for name; unknown or empty names fall back to the default."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            # OSError covers directory names such as "America"
            log_event({
                "event_type": "unknown_timezone",
                "timezone": name,
                "fallback": DEFAULT_TIMEZONE,
            }, level="warning")
    return ZoneInfo(DEFAULT_TIMEZONE)


def build_user_context(
    *,
    timezone_name: str | None,
    glance_date: dt.date | None = None,
    language: str | None = None,
    now: dt.datetime | None = None,
) -> UserContext:
    """
    Build the context for one message.

    glance_date defaults to today in the user's timezone. now is injectable
    for tests and must be timezone-aware when given.
    """
    tz = resolve_timezone(timezone_name)
    local_now = (now or dt.datetime.now(dt.timezone.utc)).astimezone(tz)

    return UserContext(
        timezone=tz.key,
        timezone_offset=format_offset(local_now.utcoffset()),
        glance_date=glance_date or local_now.date(),
        language=language,
    )
