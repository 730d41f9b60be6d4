"""
Structured Logging Configuration

JSON or plain-text output, plus two pieces of ambient context that end up
on every record:
- the request id of the API call being served
- the (room, platform) of the calendar sync being run, so lines written
  by bulk sync worker threads can be told apart
"""

import logging
import json
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Any, Dict, Iterator
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar('request_id', default='')
sync_context_var: ContextVar[Dict[str, str]] = ContextVar('sync_context', default={})

# Record attributes copied into the JSON document when present
_RECORD_FIELDS = {
    "extra_data": "data",
    "duration_ms": "duration_ms",
    "entity_type": "entity_type",
    "entity_id": "entity_id",
}


def current_context() -> Dict[str, str]:
    """Ambient fields for the record being formatted"""
    context = dict(sync_context_var.get())
    request_id = request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        log_data.update(current_context())

        for attr, key in _RECORD_FIELDS.items():
            if hasattr(record, attr):
                log_data[key] = getattr(record, attr)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends the ambient context in brackets"""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = current_context()
        if not context:
            return line
        fields = " ".join(f"{k}={v}" for k, v in sorted(context.items()))
        return f"{line} [{fields}]"


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger adapter that adds structured context to log messages.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})
        extra.update(self.extra)
        kwargs['extra'] = extra
        return msg, kwargs

    def log_with_context(
        self,
        level: int,
        msg: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        duration_ms: Optional[float] = None,
        **extra_data
    ):
        extra = {}
        if entity_type:
            extra['entity_type'] = entity_type
        if entity_id:
            extra['entity_id'] = entity_id
        if duration_ms is not None:
            extra['duration_ms'] = duration_ms
        if extra_data:
            extra['extra_data'] = extra_data

        self.log(level, msg, extra=extra)

    def sync_finished(
        self,
        room_id: str,
        platform: str,
        success: bool,
        events_processed: int,
        duration_ms: float,
        error_message: Optional[str] = None
    ):
        """Log the outcome of one calendar sync run."""
        self.log_with_context(
            logging.INFO if success else logging.WARNING,
            f"Calendar sync {'succeeded' if success else 'failed'}: {platform}",
            entity_type="room",
            entity_id=room_id,
            duration_ms=duration_ms,
            platform=platform,
            events_processed=events_processed,
            error_message=error_message
        )

    def conflict_rejected(self, entity: str, room_id: str, conflicting_id: str, date_range: str):
        self.log_with_context(
            logging.INFO,
            f"{entity} rejected, overlaps {conflicting_id} ({date_range})",
            entity_type="room",
            entity_id=room_id,
            conflicting_id=conflicting_id,
            date_range=date_range
        )


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    include_uvicorn: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines instead of plain text
        include_uvicorn: Route uvicorn loggers through the same handler
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ContextFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    logging.getLogger("app").setLevel(log_level)

    if include_uvicorn:
        for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
            logging.getLogger(logger_name).handlers = [handler]

    # Third-party noise
    for noisy in ("httpx", "httpcore", "sqlalchemy.engine", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(logging.getLogger(name), {})


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def clear_request_context():
    request_id_var.set('')


@contextmanager
def sync_context(room_id: str, platform: str) -> Iterator[None]:
    """Tag every log record written inside the block with the sync target"""
    token = sync_context_var.set({"room_id": room_id, "platform": platform})
    try:
        yield
    finally:
        sync_context_var.reset(token)
