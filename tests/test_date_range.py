"""
Tests for half-open date ranges and the in-memory conflict check
"""

import pytest
from datetime import date
from types import SimpleNamespace

from app.utils.date_range import DateRange, parse_date, parse_compact_date, format_compact_date
from app.services.conflict_detector import find_conflicts, first_conflict
from app.services.exceptions import InvalidRangeError


class TestDateRange:

    def test_checkout_day_is_not_occupied(self):
        stay = DateRange(date(2025, 6, 1), date(2025, 6, 5))
        assert stay.contains(date(2025, 6, 1))
        assert stay.contains(date(2025, 6, 4))
        assert not stay.contains(date(2025, 6, 5))

    def test_adjacent_ranges_do_not_overlap(self):
        first = DateRange(date(2025, 6, 1), date(2025, 6, 5))
        second = DateRange(date(2025, 6, 5), date(2025, 6, 10))
        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_overlap_is_symmetric(self):
        a = DateRange(date(2025, 6, 1), date(2025, 6, 5))
        b = DateRange(date(2025, 6, 4), date(2025, 6, 10))
        assert a.overlaps(b) and b.overlaps(a)

    def test_iteration_steps_calendar_days_across_month_and_dst(self):
        # 2025-03-30 is a DST change in Europe; stepping is by calendar day
        days = DateRange(date(2025, 3, 29), date(2025, 4, 2)).days()
        assert days == [date(2025, 3, 29), date(2025, 3, 30), date(2025, 3, 31), date(2025, 4, 1)]

    def test_nights(self):
        assert DateRange(date(2025, 12, 23), date(2025, 12, 27)).nights == 4

    def test_validated_rejects_zero_width(self):
        with pytest.raises(InvalidRangeError):
            DateRange.validated(date(2025, 6, 1), date(2025, 6, 1))

    def test_validated_rejects_reversed(self):
        with pytest.raises(InvalidRangeError):
            DateRange.validated(date(2025, 6, 5), date(2025, 6, 1))

    def test_intersection(self):
        window = DateRange(date(2025, 6, 1), date(2025, 6, 30))
        stay = DateRange(date(2025, 5, 28), date(2025, 6, 3))
        assert window.intersection(stay).days() == [date(2025, 6, 1), date(2025, 6, 2)]

    def test_disjoint_intersection_is_empty(self):
        a = DateRange(date(2025, 6, 1), date(2025, 6, 3))
        b = DateRange(date(2025, 7, 1), date(2025, 7, 3))
        assert a.intersection(b).is_empty
        assert a.intersection(b).days() == []


class TestDateParsing:

    def test_parse_date(self):
        assert parse_date("2025-07-10") == date(2025, 7, 10)

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(InvalidRangeError):
            parse_date("10/07/2025")

    def test_compact_dates(self):
        assert parse_compact_date("20250710") == date(2025, 7, 10)
        assert format_compact_date(date(2025, 7, 10)) == "20250710"

    def test_compact_date_invalid(self):
        assert parse_compact_date("20250231") is None
        assert parse_compact_date("2025071") is None
        assert parse_compact_date("2025O710") is None


class TestFindConflicts:

    def _period(self, id, start, end):
        return SimpleNamespace(id=id, start_date=start, end_date=end)

    def test_returns_overlaps_ordered_by_start(self):
        existing = [
            self._period("b", date(2025, 6, 8), date(2025, 6, 12)),
            self._period("a", date(2025, 6, 1), date(2025, 6, 5)),
            self._period("c", date(2025, 7, 1), date(2025, 7, 5)),
        ]
        candidate = DateRange(date(2025, 6, 4), date(2025, 6, 10))
        assert [p.id for p in find_conflicts(candidate, existing)] == ["a", "b"]

    def test_excluded_record_is_ignored(self):
        existing = [self._period("a", date(2025, 6, 1), date(2025, 6, 5))]
        candidate = DateRange(date(2025, 6, 2), date(2025, 6, 6))
        assert first_conflict(candidate, existing, exclude_id="a") is None

    def test_booking_shaped_records(self):
        booking = SimpleNamespace(id="bk", check_in_date=date(2025, 6, 1), check_out_date=date(2025, 6, 3))
        assert first_conflict(DateRange(date(2025, 6, 2), date(2025, 6, 4)), [booking]) is booking
        assert first_conflict(DateRange(date(2025, 6, 3), date(2025, 6, 4)), [booking]) is None
