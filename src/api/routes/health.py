"""Health check endpoint."""

import sqlite3
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_calendar_service
from api.models.responses import HealthResponse
from core.config import API_VERSION
from core.database import get_connection
from services.events import CalendarService

router = APIRouter()


def database_available(service: CalendarService) -> bool:
    try:
        conn = get_connection(service.store.db_path)
        try:
            conn.execute("SELECT 1 FROM calendar_events LIMIT 1")
        finally:
            conn.close()
    except sqlite3.Error:
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(service: CalendarService = Depends(get_calendar_service)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    connected = service.scheduler.is_connected

    if database_available(service):
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database_available=True,
            provider_connected=connected,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                provider_connected=connected,
                timestamp=timestamp,
                error="Event database not available",
            ).model_dump(),
        )
