"""FastAPI endpoints for biometric sync, summaries and analytics."""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from quantara.config import (
    DEFAULT_BREATHING_LIMIT,
    DEFAULT_READINGS_LIMIT,
    SERVICE_NAME,
    SERVICE_VERSION,
    get_settings,
)
from quantara.database import Database
from quantara.exceptions import QuantaraError
from quantara.logger import get_logger, setup_logging
from quantara.models import (
    BatchSyncRequest,
    BatchSyncResponse,
    BreathingHistoryResponse,
    BreathingRequest,
    BreathingResponse,
    BreathingSessionOut,
    DailySummaryOut,
    DailySummaryResponse,
    HeartRateZonesOut,
    InsightsResponse,
    LatestReadingResponse,
    ReadingOut,
    ReadingsResponse,
    RecomputeRequest,
    RecomputeResponse,
    RegisterRequest,
    RegisterResponse,
    SyncRequest,
    SyncResponse,
    TrendsResponse,
    UserOut,
    WeeklySummaryResponse,
    to_naive_utc,
)
from quantara.service import WellnessService

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

router = APIRouter()
database = Database(get_settings().database_url)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, json_output=settings.log_json or not settings.debug)
    # Startup
    database.open()
    yield
    # Shutdown
    database.close()


def get_service() -> WellnessService:
    return WellnessService(database)


def _optional(model: Type[ModelT], obj: Any) -> Optional[ModelT]:
    return model.model_validate(obj) if obj is not None else None


def _error_response(
    status_code: int, code: str, message: str, details: Optional[dict] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, "details": details or {}}},
    )


async def quantara_error_handler(request: Request, exc: QuantaraError) -> JSONResponse:
    """Render pipeline errors as ``{"error": {...}}``."""
    logger.warning(
        "request_failed",
        code=exc.code,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return _error_response(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed payloads in the same shape as pipeline errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})

    logger.warning(
        "request_invalid", errors=errors, path=request.url.path, method=request.method
    )
    return _error_response(
        422, "VALIDATION_ERROR", "Request validation failed", {"errors": errors}
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "request_crashed", error=str(exc), path=request.url.path, method=request.method
    )
    return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


@router.get("/", summary="Service information")
async def service_info() -> dict:
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "endpoints": {
            "sync": "POST /api/sync",
            "biometrics": "GET /api/biometrics/{user_id}",
            "summary": "GET /api/summary/{user_id}",
            "trends": "GET /api/trends/{user_id}",
            "breathing": "POST /api/breathing",
        },
    }


@router.get("/health", summary="Health check endpoint")
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "service": "quantara-watch"}


@router.post(
    "/api/users/register",
    response_model=RegisterResponse,
    summary="Register a device",
    description="Return the user owning a device id, creating it on first use",
)
async def register_user(
    body: RegisterRequest, service: WellnessService = Depends(get_service)
) -> RegisterResponse:
    user = service.register_user(body.device_id, body.name)
    return RegisterResponse(user=UserOut.model_validate(user))


@router.post(
    "/api/sync",
    response_model=SyncResponse,
    summary="Sync one reading",
    description="Store a reading and update the daily summary and heart rate zones",
)
async def sync_reading(
    body: SyncRequest, service: WellnessService = Depends(get_service)
) -> SyncResponse:
    """
    Ingest a single reading from a watch.

    The user is resolved from ``user_id`` or created for ``device_id``. The
    reading and both rollups are committed in one transaction.
    """
    result = service.sync_one(body)
    return SyncResponse(**result)


@router.post(
    "/api/sync/batch",
    response_model=BatchSyncResponse,
    summary="Batch sync readings",
    description="Store many readings in one transaction",
)
async def sync_batch(
    body: BatchSyncRequest, service: WellnessService = Depends(get_service)
) -> BatchSyncResponse:
    """
    Ingest a batch of readings.

    All readings are stored or none are. Daily summaries are not rebuilt for
    a batch unless rollup-on-batch is configured; use the recompute endpoint
    after a backfill.
    """
    result = service.sync_batch(body.readings, user_id=body.user_id, device_id=body.device_id)
    return BatchSyncResponse(synced_count=result["count"], user_id=result["user_id"])


@router.get(
    "/api/biometrics/{user_id}",
    response_model=ReadingsResponse,
    summary="Recent readings",
)
async def get_readings(
    user_id: str,
    limit: int = Query(DEFAULT_READINGS_LIMIT, ge=1),
    since: Optional[datetime] = None,
    service: WellnessService = Depends(get_service),
) -> ReadingsResponse:
    readings = service.get_readings(user_id, since=to_naive_utc(since), limit=limit)
    return ReadingsResponse(
        count=len(readings), readings=[ReadingOut.model_validate(r) for r in readings]
    )


@router.get(
    "/api/biometrics/{user_id}/latest",
    response_model=LatestReadingResponse,
    summary="Latest reading",
)
async def get_latest(
    user_id: str, service: WellnessService = Depends(get_service)
) -> LatestReadingResponse:
    return LatestReadingResponse(reading=_optional(ReadingOut, service.get_latest(user_id)))


@router.get(
    "/api/summary/{user_id}",
    response_model=DailySummaryResponse,
    summary="Daily summary",
    description="Summary and heart rate zones for a date (today by default)",
)
async def get_daily_summary(
    user_id: str,
    day: Optional[date] = Query(None, alias="date"),
    service: WellnessService = Depends(get_service),
) -> DailySummaryResponse:
    result = service.get_daily_summary(user_id, day)
    return DailySummaryResponse(
        date=result["date"],
        summary=_optional(DailySummaryOut, result["summary"]),
        heart_rate_zones=_optional(HeartRateZonesOut, result["zones"]),
    )


@router.get(
    "/api/summary/{user_id}/weekly",
    response_model=WeeklySummaryResponse,
    summary="Weekly summaries",
)
async def get_weekly_summaries(
    user_id: str, service: WellnessService = Depends(get_service)
) -> WeeklySummaryResponse:
    summaries = service.get_weekly_summaries(user_id)
    return WeeklySummaryResponse(summaries=[DailySummaryOut.model_validate(s) for s in summaries])


@router.post(
    "/api/summary/{user_id}/recompute",
    response_model=RecomputeResponse,
    summary="Rebuild daily summaries",
    description="Recompute summaries for the given dates, or every date with readings",
)
async def recompute_summaries(
    user_id: str,
    body: Optional[RecomputeRequest] = None,
    service: WellnessService = Depends(get_service),
) -> RecomputeResponse:
    dates = body.dates if body is not None else None
    summaries = service.recompute_daily_summaries(user_id, dates)
    return RecomputeResponse(summaries=[DailySummaryOut.model_validate(s) for s in summaries])


@router.get(
    "/api/trends/{user_id}",
    response_model=TrendsResponse,
    summary="Trends",
    description="Per-day heart rate, HRV, steps and wellness series",
)
async def get_trends(
    user_id: str,
    days: Optional[str] = None,
    service: WellnessService = Depends(get_service),
) -> TrendsResponse:
    # Accepted as text so that non-numeric values fall back to the default
    result = service.get_trends(user_id, days)
    return TrendsResponse(days=result["days"], trends=result["trends"])


@router.post(
    "/api/breathing",
    response_model=BreathingResponse,
    summary="Log a breathing session",
)
async def log_breathing_session(
    body: BreathingRequest, service: WellnessService = Depends(get_service)
) -> BreathingResponse:
    result = service.log_breathing_session(
        user_id=body.user_id,
        device_id=body.device_id,
        duration_seconds=body.duration_seconds,
        pre_heart_rate=body.pre_heart_rate,
        post_heart_rate=body.post_heart_rate,
    )
    return BreathingResponse(session_id=result["session_id"], heart_rate_change=result["hr_delta"])


@router.get(
    "/api/breathing/{user_id}",
    response_model=BreathingHistoryResponse,
    summary="Breathing history",
)
async def get_breathing_history(
    user_id: str,
    limit: int = Query(DEFAULT_BREATHING_LIMIT, ge=1),
    service: WellnessService = Depends(get_service),
) -> BreathingHistoryResponse:
    sessions = service.get_breathing_history(user_id, limit=limit)
    return BreathingHistoryResponse(
        sessions=[BreathingSessionOut.model_validate(s) for s in sessions]
    )


@router.get(
    "/api/insights/{user_id}",
    response_model=InsightsResponse,
    summary="Insights",
    description="Recovery, fitness and activity observations over the latest readings",
)
async def get_insights(
    user_id: str, service: WellnessService = Depends(get_service)
) -> InsightsResponse:
    return InsightsResponse(insights=service.get_insights(user_id))
