"""Pydantic request models for API endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field

from api.models.responses import AttachmentModel
from models.events import EventColor, EventRepeat


class EventCreateRequest(BaseModel):
    """New local event. Times must carry a UTC offset."""

    title: str = Field(min_length=1)
    start_time: datetime
    end_time: datetime
    description: str = ""
    location: str | None = None
    guests: list[str] = []
    notify_before: int | None = Field(default=None, ge=0)
    attachments: list[AttachmentModel] = []
    is_all_day: bool = False
    repeat: EventRepeat = "none"
    color: EventColor = "blue"


class EventUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    title: str | None = Field(default=None, min_length=1)
    start_time: datetime | None = None
    end_time: datetime | None = None
    description: str | None = None
    location: str | None = None
    guests: list[str] | None = None
    notify_before: int | None = Field(default=None, ge=0)
    attachments: list[AttachmentModel] | None = None
    is_all_day: bool | None = None
    repeat: EventRepeat | None = None
    color: EventColor | None = None


class RescheduleRequest(BaseModel):
    new_start: datetime
