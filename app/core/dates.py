"""Date key helpers for per-user local days and ISO weeks.

Daily period keys are ``YYYY-MM-DD`` strings in the user's time zone; weekly
achievement context keys are ISO week strings ``YYYY-Www``.
"""

import re
from datetime import UTC, date, datetime, timedelta

import pytz

from app.core.logging import get_logger

logger = get_logger(__name__)

DATE_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ISO_WEEK_KEY_PATTERN = re.compile(r"(\d{4})-W(\d{2})$")


def resolve_time_zone(time_zone: str | None) -> pytz.BaseTzInfo:
    """Resolve an IANA time zone name, falling back to UTC.

    Args:
        time_zone: Time zone name (e.g. 'Europe/Berlin') or None

    Returns:
        pytz time zone object
    """
    if not time_zone:
        return pytz.UTC
    try:
        return pytz.timezone(time_zone)
    except pytz.UnknownTimeZoneError:
        logger.warning("dates.timezone.invalid", timezone=time_zone)
        return pytz.UTC


def to_date_key_in_time_zone(moment: datetime, time_zone: str | None) -> str:
    """Format the calendar date of a moment as seen in a time zone.

    Args:
        moment: Point in time (naive values are treated as UTC)
        time_zone: Time zone name or None for UTC

    Returns:
        Date key in YYYY-MM-DD format
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    local = moment.astimezone(resolve_time_zone(time_zone))
    return local.date().isoformat()


def parse_date_key(date_key: str) -> date | None:
    """Parse a YYYY-MM-DD key.

    Returns:
        Parsed date, or None if the key is malformed
    """
    if not DATE_KEY_PATTERN.match(date_key):
        return None
    try:
        return date.fromisoformat(date_key)
    except ValueError:
        return None


def shift_date_key(date_key: str, offset_days: int) -> str:
    """Shift a date key by a number of days (negative for the past).

    Args:
        date_key: Date key in YYYY-MM-DD format
        offset_days: Days to add

    Returns:
        Shifted date key; malformed keys are returned unchanged
    """
    parsed = parse_date_key(date_key)
    if parsed is None:
        return date_key
    return (parsed + timedelta(days=offset_days)).isoformat()


def is_weekend_date_key(date_key: str) -> bool:
    """Check whether a date key falls on Saturday or Sunday."""
    parsed = parse_date_key(date_key)
    return parsed is not None and parsed.weekday() >= 5


def iso_week_start(day: date) -> date:
    """Return the Monday of the ISO week containing a date."""
    return day - timedelta(days=day.weekday())


def to_iso_week_key(day: date) -> str:
    """Format the ISO week containing a date.

    Args:
        day: Any date

    Returns:
        ISO week key like '2026-W07' (ISO year, not calendar year)
    """
    iso_year, iso_week, _ = day.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def iso_week_start_from_key(context_key: str) -> date | None:
    """Find the Monday of the ISO week named at the end of a context key.

    Args:
        context_key: String ending in YYYY-Www

    Returns:
        Monday of that week, or None if the key does not name a valid week
    """
    match = ISO_WEEK_KEY_PATTERN.search(context_key)
    if not match:
        return None
    year, week = int(match.group(1)), int(match.group(2))
    if not 1 <= week <= 53:
        return None
    try:
        return date.fromisocalendar(year, week, 1)
    except ValueError:
        return None
