"""Event CRUD and reschedule endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_calendar_service, verify_api_key
from api.models.requests import EventCreateRequest, EventUpdateRequest, RescheduleRequest
from api.models.responses import (
    ErrorCodes,
    EventListResponse,
    EventResponse,
    MutationResponse,
)
from models.events import CalendarEvent
from services.events import CalendarService
from services.reconciler import PushOutcome

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])


def event_response(event: CalendarEvent) -> EventResponse:
    return EventResponse.model_validate(event.to_dict())


def mutation_response(event: CalendarEvent, push: PushOutcome | None, message: str) -> MutationResponse:
    return MutationResponse(
        event=event_response(event),
        message=message,
        synced=push is not None and push.status in ("synced", "resolved"),
    )


def today_for(service: CalendarService) -> date:
    return datetime.now(service.tz).date()


@router.get("/events", response_model=EventListResponse)
async def list_events(
    view: str = Query("week", description="day, week or month"),
    anchor: date | None = Query(None, description="Any date inside the view (YYYY-MM-DD)"),
    service: CalendarService = Depends(get_calendar_service),
):
    """Events overlapping the window of the given view."""
    try:
        window, events = service.events_in_view(anchor or today_for(service), view)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid view",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [str(e)],
            },
        )

    return EventListResponse(
        view=view,
        window_start=window.start,
        window_end=window.end,
        events=[event_response(e) for e in events],
        count=len(events),
    )


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(event_id: str, service: CalendarService = Depends(get_calendar_service)):
    return event_response(service.get_event(event_id))


@router.post("/events", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreateRequest,
    service: CalendarService = Depends(get_calendar_service),
):
    """Create a local event, mirrored to the provider when one is connected."""
    result = await service.create_event(body.model_dump())
    return mutation_response(result.event, result.push, result.message)


@router.put("/events/{event_id}", response_model=MutationResponse)
async def update_event(
    event_id: str,
    body: EventUpdateRequest,
    service: CalendarService = Depends(get_calendar_service),
):
    result = await service.update_event(event_id, body.model_dump(exclude_unset=True))
    return mutation_response(result.event, result.push, result.message)


@router.delete("/events/{event_id}", response_model=MutationResponse)
async def delete_event(event_id: str, service: CalendarService = Depends(get_calendar_service)):
    result = await service.delete_event(event_id)
    return mutation_response(result.event, result.push, result.message)


@router.post("/events/{event_id}/reschedule", response_model=MutationResponse)
async def reschedule_event(
    event_id: str,
    body: RescheduleRequest,
    service: CalendarService = Depends(get_calendar_service),
):
    """Move an event to a new start; its duration is kept."""
    result = await service.reschedule(event_id, body.new_start)
    return mutation_response(result.event, result.push, result.message)
