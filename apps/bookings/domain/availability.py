"""
Availability Index

This is the CRITICAL structure for preventing double bookings.
Every booked day of a listing lives here, and every reservation
goes through with_range_booked() before it can be committed.

The index is a sparse calendar: year -> month -> day -> True.
Months are 1-based, like datetime.date.month. A missing key at any
level means the day is free. Booked days are never removed.

Updates never mutate an index in place; with_range_booked() returns
a new index and leaves the receiver untouched, so a failed attempt
can not leave a half-written calendar behind.
"""

from datetime import date
from typing import Dict, Iterator, Mapping, Optional

from shared.domain.value_objects import DateRange
from apps.bookings.domain.errors import DateConflictError

Calendar = Dict[int, Dict[int, Dict[int, bool]]]


class AvailabilityIndex:
    """
    Per-listing set of booked calendar days

    Usage:
        index = AvailabilityIndex.from_dict(listing.availability)
        if index.first_conflict(dates) is None:
            listing.availability = index.with_range_booked(dates).to_dict()
    """

    __slots__ = ('_years',)

    def __init__(self, years: Optional[Mapping[int, Mapping[int, Mapping[int, bool]]]] = None):
        self._years: Calendar = {}
        for year, months in (years or {}).items():
            for month, days in months.items():
                booked = {int(day): True for day, flag in days.items() if flag}
                if booked:
                    self._years.setdefault(int(year), {})[int(month)] = booked

    @classmethod
    def _wrap(cls, years: Calendar) -> 'AvailabilityIndex':
        """Adopt an already normalized calendar without copying it"""
        index = cls.__new__(cls)
        index._years = years
        return index

    def is_booked(self, day: date) -> bool:
        months = self._years.get(day.year)
        if not months:
            return False
        days = months.get(day.month)
        if not days:
            return False
        return days.get(day.day, False)

    def first_conflict(self, dates: DateRange) -> Optional[date]:
        """First already booked day of the range, or None when it is free"""
        return next((day for day in dates.days() if self.is_booked(day)), None)

    def with_range_booked(self, dates: DateRange) -> 'AvailabilityIndex':
        """
        Return a new index with every day of the range booked

        Days are walked from check-in to check-out inclusive. The first
        day that is already booked aborts the whole update.

        Raises:
            DateConflictError: carrying the first conflicting day
            ValueError: if the range is not ordered
        """
        years: Calendar = {year: dict(months) for year, months in self._years.items()}
        copied_months = set()

        for day in dates.days():
            if self.is_booked(day):
                raise DateConflictError(day)

            months = years.setdefault(day.year, {})
            if (day.year, day.month) not in copied_months:
                # Copy-on-write: month maps shared with self stay untouched
                months[day.month] = dict(months.get(day.month, {}))
                copied_months.add((day.year, day.month))
            months[day.month][day.day] = True

        return AvailabilityIndex._wrap(years)

    def booked_dates(self) -> Iterator[date]:
        """Booked days in ascending order"""
        for year in sorted(self._years):
            months = self._years[year]
            for month in sorted(months):
                for day in sorted(months[month]):
                    yield date(year, month, day)

    def to_dict(self) -> dict:
        """JSON friendly form: {"2026": {"10": {"17": true}}}"""
        return {
            str(year): {
                str(month): {str(day): True for day in sorted(days)}
                for month, days in sorted(months.items())
            }
            for year, months in sorted(self._years.items())
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> 'AvailabilityIndex':
        return cls(data or {})

    def __len__(self) -> int:
        return sum(len(days) for months in self._years.values() for days in months.values())

    def __contains__(self, day: date) -> bool:
        return self.is_booked(day)

    def __eq__(self, other):
        if not isinstance(other, AvailabilityIndex):
            return NotImplemented
        return self._years == other._years

    def __hash__(self):
        return hash(tuple(self.booked_dates()))

    def __repr__(self):
        return f"AvailabilityIndex(booked_days={len(self)})"
