"""
Common Value Objects

- DateRange: a stay from check-in to check-out, both days inclusive
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from shared.domain.base import ValueObject

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Both check_in and check_out are occupied days, so a stay with
    check_in == check_out is one night. An unordered range can be
    constructed so that it can be reported back as invalid; iterating
    it is an error.
    """
    check_in: date
    check_out: date

    @property
    def is_ordered(self) -> bool:
        return self.check_in <= self.check_out

    @property
    def nights(self) -> int:
        """Number of occupied nights, counting both ends"""
        return (self.check_out - self.check_in).days + 1

    def days(self) -> Iterator[date]:
        """
        Yield every occupied day in ascending order

        Advances in whole calendar days, so month and year rollovers
        come out right.
        """
        if not self.is_ordered:
            raise ValueError(f"Check-out ({self.check_out}) is before check-in ({self.check_in})")

        cursor = self.check_in
        while cursor <= self.check_out:
            yield cursor
            cursor += ONE_DAY

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range shares at least one day with another

        Ranges are inclusive, so DateRange(1, 3) and DateRange(3, 5)
        overlap on day 3.
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return self.check_in <= other.check_out and other.check_in <= self.check_out

    def contains(self, check_date: date) -> bool:
        return self.check_in <= check_date <= self.check_out

    def __len__(self) -> int:
        return self.nights if self.is_ordered else 0

    def __str__(self):
        return f"{self.check_in.strftime('%d.%m.%Y')} - {self.check_out.strftime('%d.%m.%Y')}"

    def __repr__(self):
        return f"DateRange({self.check_in}, {self.check_out})"
