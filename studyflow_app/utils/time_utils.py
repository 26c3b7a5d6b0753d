"""
Centralized utilities for time handling in StudyFlow.
Goal: consistent UTC storage, user-timezone "today" and display labels.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz

from ..core.settings import get_setting


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to aware UTC; SQLite stores wall time without an offset."""
    if dt is None:
        return None
    return ensure_aware(dt).astimezone(timezone.utc)


def get_timezone(tz_name: Optional[str] = None):
    """pytz timezone for ``tz_name``, defaulting to SYSTEM_TIMEZONE and then UTC."""
    name = tz_name or get_setting('SYSTEM_TIMEZONE', 'UTC')
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def local_now(tz_name: Optional[str] = None) -> datetime:
    """Current time on the wall clock of ``tz_name``."""
    return utcnow().astimezone(get_timezone(tz_name))


def start_of_day(now: datetime) -> datetime:
    """Midnight of ``now``'s calendar day, in ``now``'s own timezone."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    tz = now.tzinfo
    if tz is not None and hasattr(tz, 'localize'):
        # pytz zones need localize() to pick the offset in effect at midnight
        return tz.localize(midnight.replace(tzinfo=None))
    return midnight


def end_of_day(now: datetime) -> datetime:
    """Midnight that starts the day after ``now``."""
    start = start_of_day(now)
    tz = start.tzinfo
    following = start.replace(tzinfo=None) + timedelta(days=1)
    if tz is not None and hasattr(tz, 'localize'):
        return tz.localize(following)
    if tz is not None:
        return following.replace(tzinfo=tz)
    return following


def format_due_time(next_review: datetime, now: Optional[datetime] = None) -> str:
    """Short label describing when a card is due."""
    now = ensure_aware(now) if now is not None else utcnow()
    review_at = ensure_aware(next_review)

    diff_seconds = (review_at - now).total_seconds()
    diff_hours = int(diff_seconds // 3600)
    diff_days = diff_hours // 24

    if diff_seconds < 0:
        return 'Overdue'
    if diff_hours < 1:
        return 'Due now'
    if diff_hours < 24:
        return f'Due in {diff_hours}h'
    if diff_days < 7:
        return f'Due in {diff_days}d'
    return review_at.date().isoformat()
