"""
Data models for calendar events and sync state.

CalendarEvent is the only persisted entity. RemoteEvent is the
provider-neutral shape returned by a CalendarProvider.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta
from typing import Literal, TypedDict

EventRepeat = Literal["none", "daily", "weekly", "monthly", "yearly"]
EventColor = Literal["blue", "green", "purple", "pink", "yellow"]

# Content fields mirrored between the local store and a provider
SYNCED_FIELDS = (
    "title",
    "description",
    "location",
    "start_time",
    "end_time",
    "is_all_day",
    "repeat",
    "color",
    "guests",
    "notify_before",
)


class EventAttachment(TypedDict):
    """File attached to an event (base64 payload)."""
    id: str
    name: str
    size: int
    type: str
    data: str
    uploaded_at: str


class CalendarInfo(TypedDict):
    """Calendar discovery result."""
    user_id: str
    calendar_id: str
    calendar_name: str
    color: str | None
    is_default: bool


@dataclass
class CalendarEvent:
    """A locally stored calendar event."""

    id: str
    title: str
    start_time: datetime
    end_time: datetime
    created_at: datetime
    updated_at: datetime
    description: str = ""
    location: str | None = None
    guests: list[str] = field(default_factory=list)
    notify_before: int | None = None
    attachments: list[EventAttachment] = field(default_factory=list)
    is_all_day: bool = False
    repeat: EventRepeat = "none"
    color: EventColor = "blue"
    source: str = "local"
    external_id: str | None = None
    is_deleted: bool = False

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def is_local(self) -> bool:
        return self.source == "local"

    def synced_fields(self) -> dict:
        return {name: getattr(self, name) for name in SYNCED_FIELDS}

    def with_changes(self, **changes) -> "CalendarEvent":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class RemoteEvent:
    """An event as reported by a remote provider."""

    external_id: str
    title: str
    start_time: datetime
    end_time: datetime
    description: str = ""
    location: str | None = None
    guests: list[str] = field(default_factory=list)
    notify_before: int | None = None
    is_all_day: bool = False
    repeat: EventRepeat = "none"
    color: EventColor = "blue"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def synced_fields(self) -> dict:
        return {name: getattr(self, name) for name in SYNCED_FIELDS}


@dataclass
class SyncState:
    """Process-scoped sync status. Written only by SyncScheduler."""

    is_syncing: bool = False
    last_synced_at: datetime | None = None
    connected: dict[str, bool] = field(default_factory=dict)
    last_error: str | None = None
