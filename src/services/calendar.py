"""
Remote calendar providers.

CalendarProvider is the contract the reconciler talks to. GraphCalendarProvider
implements it over a Microsoft 365 calendar via MS Graph.
"""

import re
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from kiota_abstractions.base_request_configuration import RequestConfiguration
from msgraph import GraphServiceClient
from msgraph.generated.models.attendee import Attendee
from msgraph.generated.models.attendee_type import AttendeeType
from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.date_time_time_zone import DateTimeTimeZone
from msgraph.generated.models.day_of_week import DayOfWeek
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.event import Event
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.location import Location
from msgraph.generated.models.patterned_recurrence import PatternedRecurrence
from msgraph.generated.models.recurrence_pattern import RecurrencePattern
from msgraph.generated.models.recurrence_pattern_type import RecurrencePatternType
from msgraph.generated.models.recurrence_range import RecurrenceRange
from msgraph.generated.models.recurrence_range_type import RecurrenceRangeType
from msgraph.generated.users.item.calendars.item.events.events_request_builder import (
    EventsRequestBuilder,
)

from core.config import (
    CALENDAR_TIMEZONE,
    DEFAULT_EVENT_COLOR,
    GRAPH_CALENDAR_ID,
    GRAPH_PAGE_SIZE,
    GRAPH_PROVIDER_NAME,
    GRAPH_USER_ID,
)
from core.errors import NotFoundError, SyncError
from core.graph_client import get_graph_client, has_graph_credentials
from core.logging_config import get_logger
from models.events import CalendarEvent, CalendarInfo, RemoteEvent

logger = get_logger(__name__)

# Outlook preset categories stand in for event colors
COLOR_TO_CATEGORY = {
    "blue": "Blue category",
    "green": "Green category",
    "purple": "Purple category",
    "pink": "Red category",
    "yellow": "Yellow category",
}
CATEGORY_TO_COLOR = {
    **{category.lower(): color for color, category in COLOR_TO_CATEGORY.items()},
    "orange category": "yellow",
}

NOT_FOUND_CODES = {"ErrorItemNotFound", "itemNotFound", "ResourceNotFound"}


class CalendarProvider(ABC):
    """
    Abstract remote calendar.

    All methods raise SyncError (or NotFoundError) on failure.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Source name stored on events from this provider."""

    @abstractmethod
    async def list_events(self, start: datetime, end: datetime) -> list[RemoteEvent]:
        """Events intersecting [start, end]."""

    @abstractmethod
    async def create_event(self, event: CalendarEvent) -> RemoteEvent:
        """Create a remote copy of event; returns it with its external_id."""

    @abstractmethod
    async def update_event(self, external_id: str, event: CalendarEvent) -> RemoteEvent:
        """Overwrite the remote event's content with event's fields."""

    @abstractmethod
    async def delete_event(self, external_id: str) -> None:
        """Delete the remote event."""


# =============================================================================
# ERROR MAPPING
# =============================================================================


def to_sync_error(exc: Exception, operation: str, provider: str = GRAPH_PROVIDER_NAME) -> SyncError:
    """Translate an MS Graph / transport exception into SyncError or NotFoundError."""
    if isinstance(exc, SyncError):
        return exc

    status_code = getattr(exc, "response_status_code", None)
    odata = getattr(exc, "error", None)
    code = getattr(odata, "code", None)
    message = getattr(odata, "message", None) or str(exc) or exc.__class__.__name__

    if status_code is None and isinstance(exc, (httpx.TransportError, ConnectionError)):
        status_code = 503

    if status_code == 404 or code in NOT_FOUND_CODES:
        return NotFoundError(message, operation=operation, status_code=404, provider=provider)
    return SyncError(message, operation=operation, status_code=status_code, provider=provider)


# =============================================================================
# GRAPH <-> EVENT CONVERSION
# =============================================================================


def _zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        # Windows zone names ("Pacific Standard Time") are not IANA keys
        return ZoneInfo("UTC")


def parse_graph_time(value: DateTimeTimeZone | None) -> datetime | None:
    """Parse Graph's dateTime (7 fractional digits, zone kept separately)."""
    if value is None or not value.date_time:
        return None
    text = re.sub(r"(\.\d{6})\d+", r"\1", value.date_time).replace("Z", "+00:00")
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_zone(value.time_zone))
    return parsed


def _strip_html(content: str) -> str:
    text = re.sub(r"<[^>]+>", "\n", content)
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)


def _parse_repeat(recurrence: PatternedRecurrence | None) -> str:
    pattern = recurrence.pattern if recurrence else None
    if pattern is None or pattern.type is None:
        return "none"
    kind = str(getattr(pattern.type, "value", pattern.type)).lower()
    for repeat in ("daily", "weekly", "monthly", "yearly"):
        if repeat in kind:
            return repeat
    return "none"


def _parse_color(categories: list[str] | None) -> str:
    for category in categories or []:
        color = CATEGORY_TO_COLOR.get(category.lower())
        if color:
            return color
    return DEFAULT_EVENT_COLOR


def graph_event_to_remote(event: Event, tz_name: str = CALENDAR_TIMEZONE) -> RemoteEvent | None:
    """
    Parse an MS Graph event; None for events we cannot place on a calendar.

    All-day events carry calendar dates rather than instants, so their
    reported dates are pinned to midnights in tz_name, the same zone pushes
    write them in.
    """
    start = parse_graph_time(event.start)
    end = parse_graph_time(event.end)
    if not event.id or start is None or end is None:
        return None
    if event.is_all_day:
        tz = _zone(tz_name)
        start = datetime.combine(start.date(), time.min, tzinfo=tz)
        end = datetime.combine(end.date(), time.min, tzinfo=tz)

    description = ""
    if event.body and event.body.content:
        description = event.body.content.strip()
        if "<" in description:
            description = _strip_html(description)

    guests = [
        attendee.email_address.address
        for attendee in event.attendees or []
        if attendee.email_address and attendee.email_address.address
    ]

    notify_before = None
    if event.is_reminder_on and event.reminder_minutes_before_start is not None:
        notify_before = event.reminder_minutes_before_start

    return RemoteEvent(
        external_id=event.id,
        title=event.subject or "(No title)",
        start_time=start,
        end_time=end,
        description=description,
        location=event.location.display_name if event.location and event.location.display_name else None,
        guests=guests,
        notify_before=notify_before,
        is_all_day=bool(event.is_all_day),
        repeat=_parse_repeat(event.recurrence),
        color=_parse_color(event.categories),
        created_at=event.created_date_time,
        updated_at=event.last_modified_date_time,
    )


def _graph_time(value: datetime) -> DateTimeTimeZone:
    return DateTimeTimeZone(
        date_time=value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
        time_zone="UTC",
    )


def _graph_day(value: date, tz_name: str) -> DateTimeTimeZone:
    return DateTimeTimeZone(
        date_time=datetime.combine(value, time.min).strftime("%Y-%m-%dT%H:%M:%S"),
        time_zone=tz_name,
    )


def _build_recurrence(repeat: str, start: date) -> PatternedRecurrence | None:
    if repeat == "none":
        return None

    pattern = RecurrencePattern(interval=1)
    if repeat == "daily":
        pattern.type = RecurrencePatternType("daily")
    elif repeat == "weekly":
        pattern.type = RecurrencePatternType("weekly")
        pattern.days_of_week = [DayOfWeek(start.strftime("%A").lower())]
    elif repeat == "monthly":
        pattern.type = RecurrencePatternType("absoluteMonthly")
        pattern.day_of_month = start.day
    else:
        pattern.type = RecurrencePatternType("absoluteYearly")
        pattern.day_of_month = start.day
        pattern.month = start.month

    return PatternedRecurrence(
        pattern=pattern,
        range=RecurrenceRange(type=RecurrenceRangeType("noEnd"), start_date=start),
    )


def calendar_event_to_graph(event: CalendarEvent, tz_name: str = CALENDAR_TIMEZONE) -> Event:
    """Convert a local event to an MS Graph Event payload."""
    tz = _zone(tz_name)
    local_start = event.start_time.astimezone(tz)

    graph_event = Event(
        subject=event.title,
        body=ItemBody(content_type=BodyType.Text, content=event.description or ""),
        categories=[COLOR_TO_CATEGORY.get(event.color, COLOR_TO_CATEGORY[DEFAULT_EVENT_COLOR])],
        is_all_day=event.is_all_day,
        recurrence=_build_recurrence(event.repeat, local_start.date()),
    )

    if event.is_all_day:
        # Graph wants all-day events to span whole midnights, at least one day
        first_day = local_start.date()
        last_day = max(event.end_time.astimezone(tz).date(), first_day)
        if last_day == first_day or event.end_time.astimezone(tz).time() != time.min:
            last_day = date.fromordinal(last_day.toordinal() + 1)
        graph_event.start = _graph_day(first_day, tz.key)
        graph_event.end = _graph_day(last_day, tz.key)
    else:
        graph_event.start = _graph_time(event.start_time)
        graph_event.end = _graph_time(event.end_time)

    if event.location:
        graph_event.location = Location(display_name=event.location)

    if event.guests:
        graph_event.attendees = [
            Attendee(email_address=EmailAddress(address=guest), type=AttendeeType("required"))
            for guest in event.guests
        ]

    if event.notify_before is not None:
        graph_event.is_reminder_on = True
        graph_event.reminder_minutes_before_start = event.notify_before
    else:
        graph_event.is_reminder_on = False

    return graph_event


# =============================================================================
# MS GRAPH PROVIDER
# =============================================================================


class GraphCalendarProvider(CalendarProvider):
    """A Microsoft 365 calendar reached through MS Graph."""

    def __init__(
        self,
        graph: GraphServiceClient | None = None,
        user_id: str = GRAPH_USER_ID,
        calendar_id: str | None = GRAPH_CALENDAR_ID or None,
        page_size: int = GRAPH_PAGE_SIZE,
        tz_name: str = CALENDAR_TIMEZONE,
    ):
        self.graph = graph or get_graph_client()
        self.user_id = user_id
        self.calendar_id = calendar_id
        self.page_size = page_size
        self.tz_name = tz_name

    @property
    def provider_name(self) -> str:
        return GRAPH_PROVIDER_NAME

    async def _calendar_id(self) -> str:
        """Configured calendar id, else the user's default calendar (looked up once)."""
        if not self.calendar_id:
            try:
                default_calendar = await self.graph.users.by_user_id(self.user_id).calendar.get()
            except Exception as e:
                raise to_sync_error(e, "resolve_calendar") from e
            self.calendar_id = default_calendar.id
        return self.calendar_id

    async def _events(self):
        calendar_id = await self._calendar_id()
        return self.graph.users.by_user_id(self.user_id).calendars.by_calendar_id(calendar_id).events

    async def list_events(self, start: datetime, end: datetime) -> list[RemoteEvent]:
        """
        Fetch all events intersecting the window.

        Follows @odata.nextLink pagination. Events Graph returns without an
        id or times are skipped.
        """
        start_str = start.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        end_str = end.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        query_params = EventsRequestBuilder.EventsRequestBuilderGetQueryParameters(
            filter=f"start/dateTime lt '{end_str}' and end/dateTime gt '{start_str}'",
            orderby=["start/dateTime"],
            top=self.page_size,
        )
        config = RequestConfiguration(query_parameters=query_params)
        config.headers.add("Prefer", 'outlook.timezone="UTC"')

        events = []
        try:
            builder = await self._events()
            response = await builder.get(request_configuration=config)
            while response is not None:
                for raw_event in response.value or []:
                    parsed = graph_event_to_remote(raw_event, self.tz_name)
                    if parsed is None:
                        logger.debug("graph_event_skipped", event_id=raw_event.id)
                        continue
                    events.append(parsed)
                if not response.odata_next_link:
                    break
                response = await builder.with_url(response.odata_next_link).get()
        except SyncError:
            raise
        except Exception as e:
            raise to_sync_error(e, "list") from e

        return events

    async def create_event(self, event: CalendarEvent) -> RemoteEvent:
        try:
            builder = await self._events()
            created = await builder.post(calendar_event_to_graph(event, self.tz_name))
        except SyncError:
            raise
        except Exception as e:
            raise to_sync_error(e, "create") from e

        remote = graph_event_to_remote(created, self.tz_name) if created else None
        if remote is None:
            raise SyncError(
                "Provider did not return the created event",
                operation="create",
                provider=self.provider_name,
            )
        return remote

    async def update_event(self, external_id: str, event: CalendarEvent) -> RemoteEvent:
        try:
            builder = await self._events()
            updated = await builder.by_event_id(external_id).patch(calendar_event_to_graph(event, self.tz_name))
        except SyncError:
            raise
        except Exception as e:
            raise to_sync_error(e, "update") from e

        remote = graph_event_to_remote(updated, self.tz_name) if updated else None
        if remote is None:
            raise SyncError(
                "Provider did not return the updated event",
                operation="update",
                provider=self.provider_name,
            )
        return remote

    async def delete_event(self, external_id: str) -> None:
        try:
            builder = await self._events()
            await builder.by_event_id(external_id).delete()
        except SyncError:
            raise
        except Exception as e:
            raise to_sync_error(e, "delete") from e

    async def list_calendars(self) -> list[CalendarInfo]:
        """All calendars of the configured user."""
        try:
            response = await self.graph.users.by_user_id(self.user_id).calendars.get()
        except Exception as e:
            raise to_sync_error(e, "list_calendars") from e

        return [
            {
                "user_id": self.user_id,
                "calendar_id": calendar.id,
                "calendar_name": calendar.name or "",
                "color": str(getattr(calendar.color, "value", calendar.color)) if calendar.color else None,
                "is_default": bool(calendar.is_default_calendar),
            }
            for calendar in response.value or []
        ]


def build_provider_from_config() -> CalendarProvider | None:
    """The Graph provider when credentials and a user are configured, else None."""
    if not (GRAPH_USER_ID and has_graph_credentials()):
        logger.info("calendar_provider_not_configured")
        return None
    return GraphCalendarProvider()
