"""
Clock abstraction and calendar-day keys
"""

from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Source of the current wall-clock time"""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in a fixed timezone"""

    def __init__(self, timezone: str = "UTC"):
        self.timezone = ZoneInfo(timezone)

    def now(self) -> datetime:
        return datetime.now(self.timezone)


class ManualClock:
    """Clock that only moves when told to, for simulations and tests"""

    def __init__(self, start: datetime | None = None, timezone: str = "UTC"):
        self.timezone = ZoneInfo(timezone)
        if start is None:
            start = datetime(2024, 1, 15, 12, 0, 0, tzinfo=self.timezone)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=self.timezone)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        """Move the clock forward; accepts timedelta keyword arguments too"""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now

    def set(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=self.timezone)
        self._now = moment


def calendar_day_key(clock: Clock) -> str:
    """Date-only identifier for the clock's current local day.

    Every engine that rolls over daily must derive "today" from this
    function so they never disagree about the day boundary.
    """
    return clock.now().date().isoformat()


def epoch_seconds(clock: Clock) -> float:
    return clock.now().timestamp()
