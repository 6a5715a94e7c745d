"""
Standardized Date/Time Handling Utilities

This module is the single source of truth for "what day is it" across the
progression engine:
1. All DB timestamps stored in UTC
2. Every daily quota resets at midnight of ONE fixed regional offset
   (the product's home region), independent of the player's device time zone
3. Day keys are ISO date strings ("YYYY-MM-DD") compared by equality

CRITICAL RULES:
- Never call datetime.now() for daily logic; go through a Clock
- Never mix naive and aware datetimes
- Tests inject a Clock with a fixed now_fn to simulate day rollover
"""

import logging
from datetime import datetime, date, timedelta, timezone
from typing import Callable, Optional

from src.config import DAY_OFFSET_MINUTES

logger = logging.getLogger(__name__)

DayKey = str


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware and in UTC

    Naive datetimes are assumed to already be UTC (that is how they are stored).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


class Clock:
    """
    Converts wall-clock instants into stable calendar-day keys

    Args:
        offset_minutes: Fixed UTC offset of the home region (default from config)
        now_fn: Callable returning an aware UTC datetime (injectable for tests)
    """

    def __init__(
        self,
        offset_minutes: int = DAY_OFFSET_MINUTES,
        now_fn: Optional[Callable[[], datetime]] = None
    ):
        self.offset = timedelta(minutes=offset_minutes)
        self._now_fn = now_fn or now_utc

    def now(self) -> datetime:
        """Current instant in UTC"""
        return ensure_utc(self._now_fn())

    def day_key_for(self, instant: datetime) -> DayKey:
        """Day key of an arbitrary instant in the home region"""
        shifted = ensure_utc(instant) + self.offset
        return shifted.date().isoformat()

    def today(self) -> DayKey:
        """Today's day key, e.g. '2024-03-15'"""
        return self.day_key_for(self.now())

    def yesterday(self) -> DayKey:
        return self.day_key_for(self.now() - timedelta(days=1))

    def is_today(self, key: Optional[str]) -> bool:
        if not key:
            return False
        return key == self.today()

    def is_yesterday(self, key: Optional[str]) -> bool:
        if not key:
            return False
        return key == self.yesterday()

    def day_start_utc(self, key: DayKey) -> datetime:
        """UTC instant at which the given day key begins"""
        local_midnight = datetime.combine(date.fromisoformat(key), datetime.min.time())
        return local_midnight.replace(tzinfo=timezone.utc) - self.offset

    def seconds_until_reset(self) -> int:
        """Seconds until the next daily reset (for 'come back in ...' messages)"""
        tomorrow = date.fromisoformat(self.today()) + timedelta(days=1)
        next_reset = self.day_start_utc(tomorrow.isoformat())
        return max(0, int((next_reset - self.now()).total_seconds()))


class FixedClock(Clock):
    """
    Clock frozen at a given instant; advance() moves it forward

    Example:
        clock = FixedClock(datetime(2024, 3, 15, 18, 0, tzinfo=timezone.utc))
        clock.today()            # '2024-03-15' (23:30 IST)
        clock.advance(minutes=31)
        clock.today()            # '2024-03-16'
    """

    def __init__(self, instant: datetime, offset_minutes: int = DAY_OFFSET_MINUTES):
        self._instant = ensure_utc(instant)
        super().__init__(offset_minutes=offset_minutes, now_fn=lambda: self._instant)

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by timedelta(**kwargs)"""
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = ensure_utc(instant)


# Global default clock (home region offset from config)
default_clock = Clock()
