"""
Injectable time source.

Services never read the wall clock themselves: routes obtain a clock through
the ``get_clock`` dependency and pass ``now`` down explicitly, so tests can pin
time with ``FixedClock`` instead of patching ``datetime``.
"""

from datetime import datetime, timezone

import pytz

from app.core.config import settings


class Clock:
    """Base time source"""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in the configured local timezone"""

    def __init__(self, tz_name: str = None):
        self.tz = pytz.timezone(tz_name or settings.timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock(Clock):
    """Clock frozen at a given instant"""

    def __init__(self, at: datetime):
        self.at = ensure_aware(at)

    def now(self) -> datetime:
        return self.at

    def advance(self, delta) -> None:
        self.at = self.at + delta


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return _system_clock


def ensure_aware(value: datetime) -> datetime:
    """
    Attach UTC to a naive datetime.

    Some stores (SQLite) drop the offset of timezone-aware columns; values read
    back from them are UTC wall times.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
