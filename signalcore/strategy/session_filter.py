"""Session filter — pure function, checks whether the forex market is open."""

from datetime import datetime, timezone

FRIDAY = 4
SATURDAY = 5
SUNDAY = 6
WEEKEND_BOUNDARY_HOUR = 21  # Friday close / Sunday open, UTC


def is_forex_market_open(now: datetime) -> tuple[bool, str]:
    """Return ``(is_open, reason)`` for the UTC instant *now*.

    The market is closed all of Saturday, Sunday before 21:00 UTC, and
    Friday from 21:00 UTC.  A naive *now* is taken to be UTC.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    day = now.weekday()
    if day == SATURDAY:
        return False, "Forex market is closed on Saturdays"
    if day == SUNDAY and now.hour < WEEKEND_BOUNDARY_HOUR:
        return False, "Forex market opens Sunday 21:00 UTC"
    if day == FRIDAY and now.hour >= WEEKEND_BOUNDARY_HOUR:
        return False, "Forex market closed Friday 21:00 UTC"
    return True, "Market is open"
