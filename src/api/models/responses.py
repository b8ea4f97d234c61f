"""Pydantic response models for API endpoints."""

from datetime import date, datetime

from pydantic import BaseModel

from models.events import EventColor, EventRepeat


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    provider_connected: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AttachmentModel(BaseModel):
    id: str
    name: str
    size: int
    type: str
    data: str
    uploaded_at: str


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    location: str | None
    guests: list[str]
    notify_before: int | None
    attachments: list[AttachmentModel]
    start_time: datetime
    end_time: datetime
    is_all_day: bool
    repeat: EventRepeat
    color: EventColor
    source: str
    external_id: str | None
    created_at: datetime
    updated_at: datetime
    is_deleted: bool


class EventListResponse(BaseModel):
    view: str
    window_start: datetime
    window_end: datetime
    events: list[EventResponse]
    count: int


class MutationResponse(BaseModel):
    event: EventResponse
    message: str
    synced: bool


class EventLayoutResponse(BaseModel):
    event: EventResponse
    top: float
    height: float
    column: int
    column_count: int
    width_percent: float
    left_percent: float


class DayLayoutResponse(BaseModel):
    date: date
    events: list[EventLayoutResponse]
    current_time_top: float | None = None


class MonthCellResponse(BaseModel):
    date: date
    in_month: bool
    is_today: bool
    events: list[EventResponse]
    hidden_count: int


class MonthGridResponse(BaseModel):
    anchor: date
    weeks: list[list[MonthCellResponse]]


class NoticeResponse(BaseModel):
    level: str
    message: str
    event_id: str | None = None
    created_at: datetime


class SyncStatusResponse(BaseModel):
    provider: str | None
    is_syncing: bool
    last_synced_at: datetime | None
    connected: dict[str, bool]
    last_error: str | None
    notices: list[NoticeResponse]


class SyncResultResponse(BaseModel):
    status: str  # "success", "failed" or "skipped"
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    local_wins: int = 0
    skipped: int = 0
    error: str | None = None
    last_synced_at: datetime | None = None


class SyncRunResponse(BaseModel):
    run_id: str
    started_at: str
    trigger: str
    provider: str
    status: str
    created: int
    updated: int
    unchanged: int
    local_wins: int
    error_message: str | None
    duration_ms: int
