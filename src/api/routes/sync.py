"""Provider sync endpoints."""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_calendar_service, verify_api_key
from api.models.responses import (
    NoticeResponse,
    SyncResultResponse,
    SyncRunResponse,
    SyncStatusResponse,
)
from core.sync_log import recent_sync_runs
from services.events import CalendarService

router = APIRouter(prefix="/v1/sync", dependencies=[Depends(verify_api_key)])


@router.post("", response_model=SyncResultResponse)
async def sync_now(service: CalendarService = Depends(get_calendar_service)):
    """
    Trigger a manual pull.

    Returns status "skipped" when no provider is configured or a sync is
    already running; a failed pull is reported in the body, not as an
    HTTP error.
    """
    result = await service.scheduler.sync_now("manual")
    state = service.sync_state
    if result is None:
        return SyncResultResponse(status="skipped", last_synced_at=state.last_synced_at)

    return SyncResultResponse(
        status="success" if result.ok else "failed",
        created=result.created,
        updated=result.updated,
        unchanged=result.unchanged,
        local_wins=result.local_wins,
        skipped=result.skipped,
        error=result.error.user_message if result.error else None,
        last_synced_at=state.last_synced_at,
    )


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    notices: int = Query(10, ge=0, le=50),
    service: CalendarService = Depends(get_calendar_service),
):
    state = service.sync_state
    return SyncStatusResponse(
        provider=service.scheduler.provider_name,
        is_syncing=state.is_syncing,
        last_synced_at=state.last_synced_at,
        connected=state.connected,
        last_error=state.last_error,
        notices=[
            NoticeResponse(
                level=n.level,
                message=n.message,
                event_id=n.event_id,
                created_at=n.created_at,
            )
            for n in service.notices.recent(notices)
        ],
    )


@router.get("/runs", response_model=list[SyncRunResponse])
async def sync_runs(
    limit: int = Query(20, ge=1, le=200),
    service: CalendarService = Depends(get_calendar_service),
):
    """Most recent reconciliation runs, newest first."""
    return [SyncRunResponse(**row) for row in recent_sync_runs(limit, db_path=service.store.db_path)]
