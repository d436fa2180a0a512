# core/clock.py
"""
Time source used by the reset windows and the background jobs.

All timestamps are naive UTC datetimes, the same shape MongoDB hands back.
"""

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.utcnow()


class FixedClock:
    """
    Clock frozen at a given instant until moved explicitly.

    Usage:
        clock = FixedClock(datetime(2025, 10, 16, 9, 30))
        clock.advance(hours=3)
    """

    def __init__(self, instant: datetime):
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = instant

    def advance(self, **kwargs) -> datetime:
        self._instant += timedelta(**kwargs)
        return self._instant


system_clock = SystemClock()
