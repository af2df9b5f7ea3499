"""Time source helpers.

Business dates ("today", the on-time threshold, cohort end dates) are read in
a single fixed timezone so that a facilitator in CAT and a server in UTC agree
on which calendar day an attendance session belongs to.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, date, datetime, time
from functools import lru_cache
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Return the current aware UTC time."""
    return datetime.now(UTC)


@lru_cache
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def business_now(clock: Clock, timezone_name: str) -> datetime:
    return clock().astimezone(_zone(timezone_name))


def business_today(clock: Clock, timezone_name: str) -> date:
    return business_now(clock, timezone_name).date()


def business_time(clock: Clock, timezone_name: str) -> time:
    # Wall-clock only; the threshold comparison ignores tzinfo
    return business_now(clock, timezone_name).time().replace(tzinfo=None)
