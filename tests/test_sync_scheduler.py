"""
Tests for the scheduled calendar sync jobs
"""

import asyncio
from unittest.mock import MagicMock, patch

from app.services import sync_scheduler
from app.services.calendar_sync_service import BulkSyncResult, SyncResult


def test_run_calendar_sync_records_last_result():
    service = MagicMock()
    service.sync_all_calendars.return_value = BulkSyncResult(results=[
        SyncResult(room_id="r1", platform="airbnb", success=True, events_processed=3),
        SyncResult(room_id="r2", platform="booking", success=False, error_message="HTTP 500"),
    ])

    with patch.object(sync_scheduler, "CalendarSyncService", return_value=service):
        result = sync_scheduler.run_calendar_sync()

    assert result == {"total": 2, "succeeded": 1, "failed": 1}
    status = sync_scheduler.get_scheduler_status()
    assert status["last_sync_result"] == result
    assert status["last_sync"] is not None


def test_job_failure_is_logged_not_raised():
    with patch.object(sync_scheduler, "run_calendar_sync", side_effect=RuntimeError("db down")), \
            patch.object(sync_scheduler.logger, "error") as log_error:
        asyncio.run(sync_scheduler.run_calendar_sync_job())

    assert "db down" in log_error.call_args.args[0]


def test_status_when_not_started():
    with patch.object(sync_scheduler, "_scheduler", None):
        status = sync_scheduler.get_scheduler_status()
        assert status["running"] is False
        assert status["jobs"] == []
        assert sync_scheduler.stop_scheduler() is True
