"""
Calendar boundaries used by the betting and billing rules.

Weeks are ISO style: Monday is the first day, Sunday the last. Every boundary
is computed from the ``now`` passed in, in that value's own timezone, so a
"week" is always the current wall-clock week rather than a window anchored on
some stored timestamp.
"""

from datetime import datetime, timedelta


def _relocalize(naive: datetime, tzinfo) -> datetime:
    """Attach ``tzinfo`` to a naive wall time (pytz zones need ``localize``)."""
    if tzinfo is None:
        return naive
    localize = getattr(tzinfo, "localize", None)
    if localize is not None:
        return localize(naive)
    return naive.replace(tzinfo=tzinfo)


def week_start(now: datetime) -> datetime:
    """Most recent Monday at 00:00:00 (``now`` itself truncated if Monday)."""
    local = now.replace(tzinfo=None)
    monday = (local - timedelta(days=local.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    return _relocalize(monday, now.tzinfo)


def week_end(now: datetime) -> datetime:
    """Sunday closing the current week, at 23:59:59.999999."""
    local = now.replace(tzinfo=None)
    monday = (local - timedelta(days=local.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    sunday = (monday + timedelta(days=6)).replace(
        hour=23, minute=59, second=59, microsecond=999999
    )
    return _relocalize(sunday, now.tzinfo)


def first_of_next_month(now: datetime) -> datetime:
    """1st of the month following ``now`` at midnight."""
    local = now.replace(tzinfo=None)
    if local.month == 12:
        target = datetime(local.year + 1, 1, 1)
    else:
        target = datetime(local.year, local.month + 1, 1)
    return _relocalize(target, now.tzinfo)
