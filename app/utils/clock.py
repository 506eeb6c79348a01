from __future__ import annotations
from datetime import date, datetime, timedelta, timezone as dt_timezone
from typing import Callable, Optional
import pytz


def _utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class Clock:
    """
    Wall clock bound to one configured time zone.

    All calendar-day decisions go through ``today()`` so a deployment (or a
    test) controls what "today" means by choosing the zone and ``now_fn``.
    """

    def __init__(self, tz_name: str = "UTC", now_fn: Optional[Callable[[], datetime]] = None):
        self.tz_name = tz_name
        self.tz = pytz.timezone(tz_name)
        self._now_fn = now_fn or _utc_now

    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""
        now = self._now_fn()
        if now.tzinfo is None:
            now = now.replace(tzinfo=dt_timezone.utc)
        return now.astimezone(dt_timezone.utc)

    def local_now(self) -> datetime:
        return self.now().astimezone(self.tz)

    def today(self) -> date:
        return self.local_now().date()

    def midnight(self, day: date) -> datetime:
        """Start of ``day`` in the configured zone, as an aware datetime."""
        return self.tz.localize(datetime.combine(day, datetime.min.time()))

    def next_midnight(self) -> datetime:
        return self.midnight(self.today() + timedelta(days=1))


class FixedClock(Clock):
    """Clock whose current instant is set explicitly; used by tests and scripts."""

    def __init__(self, current: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name, now_fn=lambda: self.current)
        if current.tzinfo is None:
            current = pytz.timezone(tz_name).localize(current)
        self.current = current

    def advance(self, days: int = 0, hours: int = 0) -> datetime:
        self.current = self.current + timedelta(days=days, hours=hours)
        return self.current
