"""
Tests for iCal parsing and export

Covers:
- Event block scanning, folded lines, CRLF/LF
- Malformed blocks skipped, not fatal
- Consecutive-day grouping and byte-stable export
- Export -> parse round trip
"""

import pytest
from datetime import date, datetime
from types import SimpleNamespace

from app.services.exceptions import NotFoundError, UpstreamFormatInvalidError
from app.services.ical_service import (
    CalendarExportService,
    count_events,
    expand_events,
    generate_ical,
    group_consecutive_days,
    parse_ical,
    unfold_lines,
)
from app.services.inventory_service import InventoryService, LedgerRow
from app.utils.date_range import DateRange


AIRBNB_FEED = (
    "BEGIN:VCALENDAR\r\n"
    "PRODID:-//Airbnb Inc//Hosting Calendar 0.8.8//EN\r\n"
    "VERSION:2.0\r\n"
    "BEGIN:VEVENT\r\n"
    "DTEND;VALUE=DATE:20250712\r\n"
    "DTSTART;VALUE=DATE:20250710\r\n"
    "UID:1418fb94e984-ff2a0c16bc70@airbnb.com\r\n"
    "SUMMARY:Reserved\r\n"
    "END:VEVENT\r\n"
    "BEGIN:VEVENT\r\n"
    "DTSTAMP:20250601T120000Z\r\n"
    "DTSTART;VALUE=DATE:20250712\r\n"
    "DTEND;VALUE=DATE:20250714\r\n"
    "UID:7f2e1b6a0c3d-aa11bb22cc33@airbnb.com\r\n"
    "SUMMARY:Airbnb (Not available)\r\n"
    "END:VEVENT\r\n"
    "END:VCALENDAR\r\n"
)


def row(id, day, created_at=datetime(2025, 5, 1, 9, 30, 0)):
    return SimpleNamespace(id=id, date=day, created_at=created_at)


class TestParseIcal:

    def test_two_adjacent_events(self):
        events = parse_ical(AIRBNB_FEED)
        assert [(e.start_date, e.end_date) for e in events] == [
            (date(2025, 7, 10), date(2025, 7, 12)),
            (date(2025, 7, 12), date(2025, 7, 14)),
        ]
        assert events[1].dtstamp == "20250601T120000Z"
        assert events[0].summary == "Reserved"

    def test_expansion_excludes_end_day(self):
        days = expand_events(parse_ical(AIRBNB_FEED))
        assert list(days) == [date(2025, 7, 10), date(2025, 7, 11), date(2025, 7, 12), date(2025, 7, 13)]
        assert days[date(2025, 7, 12)] == "7f2e1b6a0c3d-aa11bb22cc33@airbnb.com"

    def test_lf_line_endings(self):
        assert len(parse_ical(AIRBNB_FEED.replace("\r\n", "\n"))) == 2

    def test_date_time_values_use_the_date_part(self):
        text = (
            "BEGIN:VCALENDAR\nBEGIN:VEVENT\nUID:x\n"
            "DTSTART:20250801T150000Z\nDTEND;TZID=Europe/Paris:20250803T110000\n"
            "END:VEVENT\nEND:VCALENDAR\n"
        )
        event = parse_ical(text)[0]
        assert (event.start_date, event.end_date) == (date(2025, 8, 1), date(2025, 8, 3))

    def test_folded_uid(self):
        text = (
            "BEGIN:VCALENDAR\r\nBEGIN:VEVENT\r\n"
            "UID:very-long-identifier-that-the-platform\r\n"
            " -folded@example.com\r\n"
            "DTSTART;VALUE=DATE:20250101\r\nDTEND;VALUE=DATE:20250102\r\n"
            "END:VEVENT\r\nEND:VCALENDAR\r\n"
        )
        assert parse_ical(text)[0].uid == "very-long-identifier-that-the-platform-folded@example.com"

    def test_malformed_blocks_are_skipped(self):
        text = (
            "BEGIN:VCALENDAR\n"
            "BEGIN:VEVENT\nDTSTART;VALUE=DATE:20250101\nDTEND;VALUE=DATE:20250103\nEND:VEVENT\n"  # no UID
            "BEGIN:VEVENT\nUID:a\nDTSTART;VALUE=DATE:20250101\nEND:VEVENT\n"  # no end
            "BEGIN:VEVENT\nUID:b\nDTSTART;VALUE=DATE:20250231\nDTEND;VALUE=DATE:20250303\nEND:VEVENT\n"
            "BEGIN:VEVENT\nUID:c\nDTSTART;VALUE=DATE:20250105\nDTEND;VALUE=DATE:20250105\nEND:VEVENT\n"
            "BEGIN:VEVENT\nUID:ok\nDTSTART;VALUE=DATE:20250110\nDTEND;VALUE=DATE:20250111\nEND:VEVENT\n"
            "BEGIN:VEVENT\nUID:unterminated\nDTSTART;VALUE=DATE:20250120\n"
            "END:VCALENDAR\n"
        )
        assert [e.uid for e in parse_ical(text)] == ["ok"]

    def test_lines_outside_events_are_ignored(self):
        text = "BEGIN:VCALENDAR\nUID:calendar-level\nDTSTART:20250101\nEND:VCALENDAR\n"
        assert parse_ical(text) == []

    def test_empty_calendar_is_valid(self):
        assert parse_ical("BEGIN:VCALENDAR\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n") == []

    def test_not_a_calendar(self):
        with pytest.raises(UpstreamFormatInvalidError):
            parse_ical("<html><body>Login required</body></html>")

    def test_count_events(self):
        assert count_events(AIRBNB_FEED) == 2

    def test_unfold_lines(self):
        assert unfold_lines("A:1\r\n 2\r\n\t3\r\nB:4") == ["A:123", "B:4"]


class TestGenerateIcal:

    def test_groups_consecutive_days(self):
        rows = [row("r3", date(2025, 7, 12)), row("r1", date(2025, 7, 10)),
                row("r2", date(2025, 7, 11)), row("r9", date(2025, 7, 15))]
        runs = group_consecutive_days(rows)
        assert [(r.id, r.start, r.end) for r in runs] == [
            ("r1", date(2025, 7, 10), date(2025, 7, 13)),
            ("r9", date(2025, 7, 15), date(2025, 7, 16)),
        ]

    def test_document_layout(self):
        text = generate_ical([row("r1", date(2025, 7, 10))], prodid="-//Test//EN", uid_domain="test.local")
        assert text.split("\r\n") == [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//Test//EN",
            "CALSCALE:GREGORIAN",
            "METHOD:PUBLISH",
            "BEGIN:VEVENT",
            "UID:r1@test.local",
            "DTSTART;VALUE=DATE:20250710",
            "DTEND;VALUE=DATE:20250711",
            "DTSTAMP:20250501T093000Z",
            "SUMMARY:Booked",
            "DESCRIPTION:This property is not available",
            "STATUS:CONFIRMED",
            "TRANSP:OPAQUE",
            "END:VEVENT",
            "END:VCALENDAR",
            "",
        ]

    def test_output_is_byte_stable(self):
        rows = [row("r1", date(2025, 7, 10)), row("r2", date(2025, 7, 11))]
        assert generate_ical(rows) == generate_ical(list(reversed(rows)))

    def test_no_rows_gives_empty_calendar(self):
        text = generate_ical([])
        assert "BEGIN:VEVENT" not in text
        assert text.startswith("BEGIN:VCALENDAR\r\n")

    def test_round_trip(self):
        days = [date(2025, 7, 10), date(2025, 7, 11), date(2025, 7, 20)]
        exported = generate_ical([row(f"r{i}", d) for i, d in enumerate(days)])
        assert list(expand_events(parse_ical(exported))) == days


class TestCalendarExportService:

    def test_exports_only_direct_rows(self, db, room):
        inventory = InventoryService(db)
        inventory.mark_dates_booked(room.id, "booking-1", DateRange(date(2025, 7, 1), date(2025, 7, 3)))
        inventory.replace_platform_days(room.id, "airbnb", [
            LedgerRow(day, "a@airbnb.com") for day in DateRange(date(2025, 7, 10), date(2025, 7, 14))
        ])
        db.commit()

        text = CalendarExportService(db).export_calendar(room.id)

        events = parse_ical(text)
        assert [(e.start_date, e.end_date) for e in events] == [(date(2025, 7, 1), date(2025, 7, 3))]

    def test_repeated_exports_are_identical(self, db, room):
        InventoryService(db).mark_dates_booked(room.id, "booking-1", DateRange(date(2025, 7, 1), date(2025, 7, 3)))
        db.commit()
        service = CalendarExportService(db)
        assert service.export_calendar(room.id) == service.export_calendar_by_slug(room.slug)

    def test_unknown_room(self, db):
        with pytest.raises(NotFoundError):
            CalendarExportService(db).export_calendar("missing")
