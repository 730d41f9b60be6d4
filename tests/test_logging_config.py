"""
Tests for structured log output and ambient sync/request context
"""

import json
import logging

from app.utils.logging_config import (
    ContextFormatter,
    JSONFormatter,
    clear_request_context,
    set_request_context,
    sync_context,
)


def make_record(msg="Syncing"):
    return logging.LogRecord("app.services.calendar_sync_service", logging.INFO, __file__, 10, msg, None, None)


def test_json_lines_carry_sync_target():
    record = make_record()
    record.duration_ms = 12

    with sync_context("room-1", "airbnb"):
        data = json.loads(JSONFormatter().format(record))

    assert data["room_id"] == "room-1"
    assert data["platform"] == "airbnb"
    assert data["duration_ms"] == 12
    assert data["message"] == "Syncing"


def test_context_is_cleared_after_block():
    with sync_context("room-1", "airbnb"):
        pass
    data = json.loads(JSONFormatter().format(make_record()))
    assert "room_id" not in data


def test_plain_text_appends_request_id():
    set_request_context("abc123")
    try:
        line = ContextFormatter("%(message)s").format(make_record("Hello"))
    finally:
        clear_request_context()
    assert line == "Hello [request_id=abc123]"
