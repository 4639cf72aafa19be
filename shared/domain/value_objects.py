"""
Common Value Objects

- DateRange: half-open stay interval [start, end), used for reservations,
  host-blocked periods and availability checks.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents a range from start (inclusive) to end (exclusive), so a
    checkout on day N and another guest's check-in on day N never clash.
    """
    start: date
    end: date

    def __post_init__(self):
        if not isinstance(self.start, date) or not isinstance(self.end, date):
            raise TypeError("DateRange bounds must be dates")
        if self.start >= self.end:
            raise ValueError(f"Start date ({self.start}) must be before end date ({self.end})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range overlaps with another

        Examples:
            - DateRange(10, 15) overlaps with DateRange(12, 18) -> True
            - DateRange(10, 15) overlaps with DateRange(15, 18) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return self.start < other.end and other.start < self.end

    def contains(self, day: date) -> bool:
        """start is inclusive, end is exclusive"""
        return self.start <= day < self.end

    def covers(self, other: 'DateRange') -> bool:
        """True if `other` lies entirely inside this range"""
        return self.start <= other.start and other.end <= self.end

    def days(self) -> Iterator[date]:
        """Iterate over the nights of the stay (end excluded)"""
        current = self.start
        while current < self.end:
            yield current
            current += timedelta(days=1)

    @property
    def nights(self) -> int:
        return (self.end - self.start).days

    def __len__(self) -> int:
        return self.nights

    def to_dict(self) -> dict:
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start}, {self.end})"
