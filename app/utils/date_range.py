"""
Half-open calendar-day intervals.

[start, end): start is occupied, end is not, so a checkout day can be
the next guest's check-in day. All stepping is by calendar day.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, List, Optional

ONE_DAY = timedelta(days=1)


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD, raising InvalidRangeError on anything else"""
    from ..services.exceptions import InvalidRangeError

    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidRangeError(f"Date must be in YYYY-MM-DD format: {value!r}")


def parse_compact_date(value: str) -> Optional[date]:
    """Parse an 8-digit YYYYMMDD date, None if it is not a real date"""
    if len(value) != 8 or not value.isdigit():
        return None
    try:
        return date(int(value[0:4]), int(value[4:6]), int(value[6:8]))
    except ValueError:
        return None


def format_compact_date(value: date) -> str:
    return value.strftime("%Y%m%d")


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @classmethod
    def validated(cls, start: date, end: date, what: str = "date range") -> "DateRange":
        """Build a non-empty range or raise InvalidRangeError"""
        from ..services.exceptions import InvalidRangeError

        if start is None or end is None:
            raise InvalidRangeError(f"{what} requires both a start and an end date")
        if end <= start:
            raise InvalidRangeError(
                f"{what} end ({end.isoformat()}) must be after start ({start.isoformat()})"
            )
        return cls(start, end)

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start

    @property
    def nights(self) -> int:
        return max(0, (self.end - self.start).days)

    def overlaps(self, other: "DateRange") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    def intersection(self, other: "DateRange") -> "DateRange":
        return DateRange(max(self.start, other.start), min(self.end, other.end))

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current < self.end:
            yield current
            current += ONE_DAY

    def days(self) -> List[date]:
        return list(self)

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
