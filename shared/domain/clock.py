"""
Clock

Date validation and promotion windows depend on "now". The domain never
reads the wall clock itself; callers pass a Clock so the engine stays
pure and tests stay deterministic.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta


class Clock:
    """Interface: current aware datetime and local date"""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall clock backed by Django's timezone support"""

    def now(self) -> datetime:
        from django.utils import timezone  # type: ignore

        return timezone.now()

    def today(self) -> date:
        from django.utils import timezone  # type: ignore

        return timezone.localdate()


@dataclass
class FixedClock(Clock):
    """Frozen clock for tests and replays"""
    current: datetime

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)
