"""
Calendar Service Errors

Every error the core raises derives from CalendarError and carries the
HTTP status the API layer should answer with.
"""

from datetime import date
from typing import Optional


class CalendarError(Exception):
    """Base class for errors returned to API callers"""
    status_code = 500
    kind = "calendar_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.detail}


class NotFoundError(CalendarError):
    status_code = 404
    kind = "not_found"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class InvalidRangeError(CalendarError):
    status_code = 422
    kind = "invalid_range"


class ConflictError(CalendarError):
    """A blocked period or pricing rule would overlap an existing one"""
    status_code = 409
    kind = "conflict"

    def __init__(
        self,
        entity: str,
        room_id: str,
        conflicting_id: str,
        conflicting_label: Optional[str],
        conflicting_start: date,
        conflicting_end: date,
    ):
        label = f' "{conflicting_label}"' if conflicting_label else ""
        super().__init__(
            f"{entity} overlaps with existing {entity.lower()}{label} "
            f"({conflicting_start.isoformat()} - {conflicting_end.isoformat()}) on room {room_id}"
        )
        self.entity = entity
        self.room_id = room_id
        self.conflicting_id = conflicting_id
        self.conflicting_label = conflicting_label
        self.conflicting_start = conflicting_start
        self.conflicting_end = conflicting_end

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflict"] = {
            "id": self.conflicting_id,
            "label": self.conflicting_label,
            "start_date": self.conflicting_start.isoformat(),
            "end_date": self.conflicting_end.isoformat(),
        }
        return data


class UpstreamFetchFailedError(CalendarError):
    status_code = 502
    kind = "upstream_fetch_failed"


class UpstreamFormatInvalidError(CalendarError):
    status_code = 502
    kind = "upstream_format_invalid"


class PersistenceFailureError(CalendarError):
    status_code = 500
    kind = "persistence_failure"
