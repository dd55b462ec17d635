"""
Time helpers shared by the bill, budget and goal calculations.

The engines never read the system clock themselves; "now" is always passed in.
``utc_now`` is the one place the application asks the system for the time, and
the API exposes it through the ``get_now`` dependency so tests can pin it.
"""
import math
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_now() -> datetime:
    """FastAPI dependency returning the request's notion of "now"."""
    return utc_now()


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def days_until(moment: datetime, now: datetime) -> int:
    """Whole days from ``now`` until ``moment``, rounded up. Negative once ``moment`` has passed."""
    return math.ceil((moment - now).total_seconds() / SECONDS_PER_DAY)


def days_since(moment: datetime, now: datetime) -> float:
    """Fractional days elapsed between ``moment`` and ``now``."""
    return (now - moment).total_seconds() / SECONDS_PER_DAY
