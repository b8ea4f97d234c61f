"""Positioned day layout and month grid endpoints."""

from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_calendar_service, verify_api_key
from api.models.responses import (
    DayLayoutResponse,
    EventLayoutResponse,
    MonthCellResponse,
    MonthGridResponse,
)
from api.routes.events import event_response, today_for
from services.events import CalendarService
from services.layout import current_time_marker

router = APIRouter(prefix="/v1/layout", dependencies=[Depends(verify_api_key)])


@router.get("/day", response_model=DayLayoutResponse)
async def day_layout(
    day: date | None = Query(None, alias="date", description="YYYY-MM-DD, defaults to today"),
    service: CalendarService = Depends(get_calendar_service),
):
    """Timed events of one day with their top/height and column placement."""
    day = day or today_for(service)
    placements = service.day_layout(day)
    return DayLayoutResponse(
        date=day,
        events=[
            EventLayoutResponse(
                event=event_response(p.event),
                top=p.top,
                height=p.height,
                column=p.column,
                column_count=p.column_count,
                width_percent=p.width_percent,
                left_percent=p.left_percent,
            )
            for p in placements
        ],
        current_time_top=current_time_marker(datetime.now(timezone.utc), day, tz=service.tz),
    )


@router.get("/month", response_model=MonthGridResponse)
async def month_layout(
    anchor: date | None = Query(None, description="Any date in the month, defaults to today"),
    service: CalendarService = Depends(get_calendar_service),
):
    today = today_for(service)
    anchor = anchor or today
    rows = service.month_grid(anchor, today)
    return MonthGridResponse(
        anchor=anchor,
        weeks=[
            [
                MonthCellResponse(
                    date=cell.day,
                    in_month=cell.in_month,
                    is_today=cell.is_today,
                    events=[event_response(e) for e in cell.events],
                    hidden_count=cell.hidden_count,
                )
                for cell in row
            ]
            for row in rows
        ],
    )
