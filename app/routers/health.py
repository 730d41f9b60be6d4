"""
Health Check Endpoints

- /health/live - Liveness check (is process running)
- /health/ready - Readiness check (database reachable)
- /health/detailed - Component statuses: database, sync scheduler, feed freshness
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timedelta, timezone
import time

from ..database import get_db
from ..config import settings
from ..models.calendar_feed import RoomCalendarFeed
from ..models.sync_log import CalendarSyncLog, SyncStatus
from ..services.sync_scheduler import get_scheduler_status
from ..utils.clock import utcnow

router = APIRouter(prefix="/health", tags=["Health"])

APP_VERSION = "1.0.0"


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": "postgresql" if "postgresql" in str(db.bind.url) else "sqlite"
        }
    except SQLAlchemyError as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


def get_feed_health(db: Session) -> dict:
    """Active feed count, feeds never synced, and sync errors in the last 24h"""
    try:
        active = db.query(func.count(RoomCalendarFeed.id)).filter(
            RoomCalendarFeed.is_active.is_(True)
        ).scalar()
        never_synced = db.query(func.count(RoomCalendarFeed.id)).filter(
            RoomCalendarFeed.is_active.is_(True),
            RoomCalendarFeed.last_synced_at.is_(None)
        ).scalar()
        recent_errors = db.query(func.count(CalendarSyncLog.id)).filter(
            CalendarSyncLog.status == SyncStatus.ERROR.value,
            CalendarSyncLog.created_at >= utcnow() - timedelta(hours=24)
        ).scalar()
    except SQLAlchemyError as e:
        return {"status": "unknown", "error": str(e)[:100]}

    return {
        "status": "degraded" if recent_errors else "up",
        "active_feeds": active,
        "never_synced": never_synced,
        "errors_24h": recent_errors
    }


@router.get("/live")
async def liveness_check():
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    db_health = get_db_health(db)

    if db_health["status"] == "up":
        return {
            "status": "ready",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "status": "not_ready",
            "reason": "database_unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


@router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    db_health = get_db_health(db)
    scheduler = get_scheduler_status()
    feeds = get_feed_health(db) if db_health["status"] == "up" else {"status": "unknown"}

    if db_health["status"] == "down":
        overall_status = "unhealthy"
    elif settings.sync_scheduler_enabled and not scheduler["running"]:
        overall_status = "degraded"
    elif feeds["status"] == "degraded":
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": APP_VERSION,
        "environment": settings.environment,
        "checks": {
            "database": db_health,
            "sync_scheduler": {
                "status": "up" if scheduler["running"] else "down",
                "last_sync": scheduler["last_sync"]
            },
            "calendar_feeds": feeds
        }
    }
