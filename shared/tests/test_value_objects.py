"""Tests for DateRange."""

from __future__ import annotations

from datetime import date

from django.test import SimpleTestCase

from shared.domain.value_objects import DateRange


class DateRangeTests(SimpleTestCase):
    def test_nights_count_both_ends(self) -> None:
        self.assertEqual(DateRange(date(2026, 10, 17), date(2026, 10, 17)).nights, 1)
        self.assertEqual(DateRange(date(2026, 10, 1), date(2026, 10, 3)).nights, 3)

    def test_days_cross_year_end(self) -> None:
        days = list(DateRange(date(2026, 12, 31), date(2027, 1, 1)).days())

        self.assertEqual(days, [date(2026, 12, 31), date(2027, 1, 1)])

    def test_unordered_range_can_be_built_but_not_walked(self) -> None:
        dates = DateRange(date(2026, 10, 3), date(2026, 10, 1))

        self.assertFalse(dates.is_ordered)
        with self.assertRaises(ValueError):
            list(dates.days())

    def test_inclusive_overlap(self) -> None:
        first = DateRange(date(2026, 10, 1), date(2026, 10, 3))

        self.assertTrue(first.overlaps_with(DateRange(date(2026, 10, 3), date(2026, 10, 5))))
        self.assertFalse(first.overlaps_with(DateRange(date(2026, 10, 4), date(2026, 10, 5))))

    def test_value_equality(self) -> None:
        self.assertEqual(
            DateRange(date(2026, 10, 1), date(2026, 10, 3)),
            DateRange(date(2026, 10, 1), date(2026, 10, 3)),
        )
