"""
iCal Service

Reads and writes the subset of iCalendar used for availability feeds:
VCALENDAR / VEVENT markers, UID, DTSTART, DTEND, DTSTAMP (and SUMMARY
on the way in). Dates are whole days, end exclusive.

Inbound:  parse_ical -> expand_events -> ledger rows for one platform
Outbound: blocked "direct" ledger rows -> consecutive runs -> VEVENTs
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..models.room_availability import AvailabilitySource, RoomAvailability
from ..utils.date_range import ONE_DAY, DateRange, format_compact_date, parse_compact_date
from .availability_service import AvailabilityService
from .exceptions import UpstreamFormatInvalidError
from .inventory_service import InventoryService

logger = logging.getLogger(__name__)

BEGIN_CALENDAR = "BEGIN:VCALENDAR"
END_CALENDAR = "END:VCALENDAR"
BEGIN_EVENT = "BEGIN:VEVENT"
END_EVENT = "END:VEVENT"

EXPORT_SUMMARY = "Booked"
EXPORT_DESCRIPTION = "This property is not available"


@dataclass
class ICalEvent:
    uid: str
    start_date: date
    end_date: date
    dtstamp: Optional[str] = None
    summary: Optional[str] = None

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)


@dataclass
class BlockedRun:
    """Maximal run of consecutive blocked days"""
    id: str
    start: date
    last: date
    stamp: Optional[datetime] = None

    @property
    def end(self) -> date:
        return self.last + ONE_DAY


def unfold_lines(text: str) -> List[str]:
    """Split into logical lines, joining RFC 5545 folded continuations"""
    lines: List[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return [line.strip() for line in lines]


def _split_property(line: str):
    """'DTSTART;VALUE=DATE:20250710' -> ('DTSTART', '20250710')"""
    if ":" not in line:
        return None, None
    head, value = line.split(":", 1)
    name = head.split(";", 1)[0].upper()
    return name, value.strip()


def _value_date(value: str) -> Optional[date]:
    """First 8 characters of a DATE or DATE-TIME value"""
    return parse_compact_date(value[:8])


def parse_ical(text: str) -> List[ICalEvent]:
    """
    Parse the events of a calendar document.

    Line scanner with two states, outside and inside an event. Fields of
    an event block are collected; at END:VEVENT the block is kept only
    if it has a UID, a valid start, and an end after the start. Every
    other block is dropped. Lines outside events are ignored.

    Raises:
        UpstreamFormatInvalidError: no BEGIN:VCALENDAR or BEGIN:VEVENT at all
    """
    lines = unfold_lines(text or "")
    upper = [line.upper() for line in lines]
    if BEGIN_CALENDAR not in upper and BEGIN_EVENT not in upper:
        raise UpstreamFormatInvalidError("Document has no calendar or event markers")

    events: List[ICalEvent] = []
    fields: Optional[Dict[str, str]] = None  # None while outside an event
    skipped = 0

    for line, marker in zip(lines, upper):
        if marker == BEGIN_EVENT:
            if fields is not None:
                skipped += 1  # unterminated previous block
            fields = {}
            continue

        if fields is None:
            continue

        if marker == END_EVENT:
            event = _build_event(fields)
            if event is None:
                skipped += 1
            else:
                events.append(event)
            fields = None
            continue

        name, value = _split_property(line)
        if name in ("UID", "DTSTART", "DTEND", "DTSTAMP", "SUMMARY") and name not in fields:
            fields[name] = value

    if fields is not None:
        skipped += 1

    if skipped:
        logger.info(f"Skipped {skipped} malformed calendar event(s)")
    return events


def _build_event(fields: Dict[str, str]) -> Optional[ICalEvent]:
    uid = fields.get("UID")
    start = _value_date(fields.get("DTSTART", ""))
    end = _value_date(fields.get("DTEND", ""))
    if not uid or start is None or end is None or end <= start:
        return None
    return ICalEvent(
        uid=uid,
        start_date=start,
        end_date=end,
        dtstamp=fields.get("DTSTAMP"),
        summary=fields.get("SUMMARY")
    )


def count_events(text: str) -> int:
    return sum(1 for line in unfold_lines(text or "") if line.upper() == BEGIN_EVENT)


def expand_events(events: Iterable[ICalEvent]) -> Dict[date, str]:
    """Blocked day -> UID of the event covering it (end day not included)"""
    days: Dict[date, str] = {}
    for event in events:
        for day in event.date_range:
            days[day] = event.uid
    return dict(sorted(days.items()))


def group_consecutive_days(rows: Iterable[RoomAvailability]) -> List[BlockedRun]:
    """
    Greedy grouping of date-sorted rows into maximal runs.
    Input: rows for 10, 11, 12, 15 -> runs [10..12], [15..15]
    """
    runs: List[BlockedRun] = []
    current: Optional[BlockedRun] = None

    for row in sorted(rows, key=lambda r: (r.date, r.id)):
        if current is not None and row.date == current.last + ONE_DAY:
            current.last = row.date
            continue
        if current is not None and row.date == current.last:
            continue  # duplicate day
        current = BlockedRun(id=row.id, start=row.date, last=row.date, stamp=row.created_at)
        runs.append(current)

    return runs


def _format_stamp(stamp: Optional[datetime], fallback: date) -> str:
    if stamp is None:
        stamp = datetime(fallback.year, fallback.month, fallback.day)
    return stamp.strftime("%Y%m%dT%H%M%SZ")


def generate_ical(
    rows: Iterable[RoomAvailability],
    prodid: Optional[str] = None,
    uid_domain: Optional[str] = None
) -> str:
    """
    Serialize blocked rows as a calendar document.

    One VEVENT per run of consecutive days, DTEND exclusive. DTSTAMP
    comes from the run's first row, so unchanged data always produces
    the same bytes.
    """
    prodid = prodid or settings.ical_prodid
    uid_domain = uid_domain or settings.ical_uid_domain

    lines = [
        BEGIN_CALENDAR,
        "VERSION:2.0",
        f"PRODID:{prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for run in group_consecutive_days(rows):
        lines.extend([
            BEGIN_EVENT,
            f"UID:{run.id}@{uid_domain}",
            f"DTSTART;VALUE=DATE:{format_compact_date(run.start)}",
            f"DTEND;VALUE=DATE:{format_compact_date(run.end)}",
            f"DTSTAMP:{_format_stamp(run.stamp, run.start)}",
            f"SUMMARY:{EXPORT_SUMMARY}",
            f"DESCRIPTION:{EXPORT_DESCRIPTION}",
            "STATUS:CONFIRMED",
            "TRANSP:OPAQUE",
            END_EVENT,
        ])

    lines.append(END_CALENDAR)
    return "\r\n".join(lines) + "\r\n"


class CalendarExportService:
    """Outbound feed of a room's own (direct) blocked days"""

    def __init__(self, db: Session):
        self.db = db
        self.rooms = AvailabilityService(db)
        self.inventory = InventoryService(db)

    def export_calendar(self, room_id: str) -> str:
        room = self.rooms.get_room(room_id)
        rows = self.inventory.get_platform_days(room.id, AvailabilitySource.DIRECT.value)
        logger.debug(f"Exporting {len(rows)} direct days for room {room.id}")
        return generate_ical(rows)

    def export_calendar_by_slug(self, slug: str) -> str:
        room = self.rooms.get_room_by_slug(slug)
        return self.export_calendar(room.id)
