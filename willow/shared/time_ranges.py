"""Dashboard time-range filters ('1d', '7d', '30d', '90d', 'ytd', 'all')"""

from datetime import datetime, timedelta
from typing import Optional

TIME_RANGES = ("1d", "7d", "30d", "90d", "ytd", "all")

_DAYS = {"1d": 1, "7d": 7, "30d": 30, "90d": 90}


def range_start(time_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of the window ending at `now`; None means all time.

    Raises:
        ValueError: For an unknown range
    """
    now = now or datetime.utcnow()
    if time_range in _DAYS:
        return now - timedelta(days=_DAYS[time_range])
    if time_range == "ytd":
        return datetime(now.year, 1, 1)
    if time_range == "all":
        return None
    raise ValueError(f"time range must be one of: {', '.join(TIME_RANGES)}")


def in_range(value: Optional[datetime], start: Optional[datetime], end: datetime) -> bool:
    if value is None:
        return False
    return (start is None or value >= start) and value <= end
