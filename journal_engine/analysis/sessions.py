"""
Trading session and weekday lookup tables.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# (start hour inclusive, end hour exclusive, session); bands cover 0-24
SESSION_BANDS = [
    (0, 8, "asian"),
    (8, 13, "london"),
    (13, 17, "overlap"),  # London + New York
    (17, 22, "new-york"),
    (22, 24, "other"),
]

HOUR_TO_SESSION = {
    hour: session for start, end, session in SESSION_BANDS for hour in range(start, end)
}

# datetime.weekday() -> name
WEEKDAYS = {
    0: "monday",
    1: "tuesday",
    2: "wednesday",
    3: "thursday",
    4: "friday",
    5: "saturday",
    6: "sunday",
}


def session_for(moment: datetime) -> str:
    return HOUR_TO_SESSION[moment.hour]


def weekday_for(moment: datetime) -> str:
    return WEEKDAYS[moment.weekday()]


def resolve_timezone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Resolve an IANA zone name; unknown names are ignored."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using trade wall-clock time")
        return None


def local_time(moment: datetime, tz: Optional[ZoneInfo] = None) -> datetime:
    """Naive wall-clock time of a timestamp.

    Aware timestamps are moved into ``tz`` when one is given, otherwise their
    own wall-clock reading is kept. Naive timestamps are already local.
    """
    if moment.tzinfo is not None:
        if tz is not None:
            moment = moment.astimezone(tz)
        return moment.replace(tzinfo=None)
    return moment


def week_start(moment: datetime) -> datetime:
    """Midnight of the Sunday starting the week of ``moment``."""
    days_since_sunday = (moment.weekday() + 1) % 7
    day = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=days_since_sunday)
