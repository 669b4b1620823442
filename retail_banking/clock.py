"""
Clock Module

Injectable time source. Ledger timestamps, calendar-month checks and loan
due dates all come from a Clock so tests can cross month boundaries.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Abstract clock; now() always returns a timezone-aware UTC datetime"""

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time"""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Returns the same value on repeated calls until advance() or
    set_time() is called.
    """

    def __init__(self, fixed_time: Optional[datetime] = None):
        self._time = fixed_time or datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        if self._time.tzinfo is None:
            self._time = self._time.replace(tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time"""
        if time.tzinfo is None:
            time = time.replace(tzinfo=timezone.utc)
        self._time = time

    def advance(self, seconds: int = 0, minutes: int = 0, days: int = 0) -> datetime:
        """Move the clock forward and return the new time"""
        self._time = self._time + timedelta(seconds=seconds, minutes=minutes, days=days)
        return self._time
