from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
import logging
import uuid

from .config import settings
from .database import create_tables
from .services.exceptions import CalendarError
from .services.sync_scheduler import start_scheduler, stop_scheduler
from .utils.logging_config import setup_logging, set_request_context, clear_request_context

from .routers import availability, blocked_periods, calendar, health, pricing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(settings.log_level, json_format=settings.log_json)

    logger.info("Starting roomcal-backend...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"CORS Origins: {settings.cors_origins}")

    create_tables()

    if settings.sync_scheduler_enabled:
        start_scheduler()
    else:
        logger.info("Calendar sync scheduler disabled")

    yield

    logger.info("Shutting down roomcal-backend...")
    stop_scheduler()


app = FastAPI(
    title="RoomCal Backend API",
    description="Room availability, pricing rules and iCal calendar sync",
    version="1.0.0",
    lifespan=lifespan
)


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)


@app.exception_handler(CalendarError)
async def calendar_error_handler(request: Request, exc: CalendarError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(availability.router)
app.include_router(pricing.router)
app.include_router(blocked_periods.router)
app.include_router(calendar.router)


@app.get("/")
async def root():
    return {
        "message": "RoomCal API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running"
    }
