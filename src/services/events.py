"""
Calendar service: the object the API (or any UI) talks to.

Holds the store, provider reconciliation, scheduler and notices explicitly
instead of ambient globals. Every mutation is committed locally first and
then pushed best-effort.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable
from zoneinfo import ZoneInfo

from core.config import CALENDAR_TIMEZONE, LOCAL_SOURCE, WEEK_STARTS_ON
from core.database import EventStore, UPDATABLE_FIELDS
from core.errors import EventNotFoundError, ValidationError
from core.logging_config import get_logger
from core.sync_log import SyncRunLog
from core.validation import validate_event_data
from models.events import CalendarEvent, SyncState
from services.calendar import CalendarProvider
from services.layout import EventLayout, MonthCell, layout_day, month_grid
from services.notices import NoticeBoard
from services.reconciler import PushOutcome, SyncReconciler
from services.reschedule import DragSession, RescheduleHandler, RescheduleResult
from services.scheduler import SyncScheduler
from services.time_window import TimeWindow, day_bounds, resolve_window

logger = get_logger(__name__)

EDITABLE_FIELDS = UPDATABLE_FIELDS - {"source", "external_id", "is_deleted"}


@dataclass
class MutationResult:
    event: CalendarEvent
    push: PushOutcome | None
    message: str


class CalendarService:
    """Local-first calendar operations for one user and at most one provider."""

    def __init__(
        self,
        store: EventStore,
        provider: CalendarProvider | None = None,
        notices: NoticeBoard | None = None,
        tz: ZoneInfo | None = None,
        week_starts_on: int = WEEK_STARTS_ON,
        run_logger: Callable[[SyncRunLog], None] | None = None,
        scheduler: SyncScheduler | None = None,
    ):
        self.store = store
        self.notices = notices if notices is not None else NoticeBoard()
        self.tz = tz or ZoneInfo(CALENDAR_TIMEZONE)
        self.week_starts_on = week_starts_on
        self.reconciler = SyncReconciler(store, provider, self.notices) if provider else None
        self.scheduler = scheduler or SyncScheduler(self.reconciler, run_logger=run_logger)
        self.rescheduler = RescheduleHandler(store, self.reconciler, self.notices)

    @property
    def sync_state(self) -> SyncState:
        return self.scheduler.state

    @property
    def _mirror_creates(self) -> bool:
        return self.reconciler is not None and self.scheduler.is_connected

    def _notify(self, push: PushOutcome | None, event_id: str, done: str, synced: str, local_only: str) -> str:
        if push is None or push.status == "skipped":
            message, level = done, "success"
        elif push.failed:
            message, level = push.failure_message(local_only), "warning"
        else:
            message, level = synced.format(provider=self.reconciler.provider_name), "success"
        self.notices.post(level, message, event_id=event_id)
        return message

    # =========================================================================
    # Reads
    # =========================================================================

    def window(self, anchor: date, view: str) -> TimeWindow:
        return resolve_window(anchor, view, week_starts_on=self.week_starts_on, tz=self.tz)

    def events_in_view(self, anchor: date, view: str) -> tuple[TimeWindow, list[CalendarEvent]]:
        window = self.window(anchor, view)
        return window, self.store.query(window.start, window.end)

    def get_event(self, event_id: str) -> CalendarEvent:
        event = self.store.get_by_id(event_id)
        if event is None or event.is_deleted:
            raise EventNotFoundError(event_id)
        return event

    def day_layout(self, day: date) -> list[EventLayout]:
        day_start, day_end = day_bounds(day, self.tz)
        return layout_day(self.store.query(day_start, day_end), day, tz=self.tz)

    def month_grid(self, anchor: date, today: date) -> list[list[MonthCell]]:
        _, events = self.events_in_view(anchor, "month")
        return month_grid(events, anchor, today, week_starts_on=self.week_starts_on, tz=self.tz)

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_event(self, data: dict) -> MutationResult:
        """Create a local event; mirror it to the provider when connected."""
        unknown = set(data) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        payload = {**data, "source": LOCAL_SOURCE}
        validate_event_data(payload)

        event = self.store.create(payload)
        logger.info("event_created", event_id=event.id)

        push = None
        if self._mirror_creates:
            push = await self.reconciler.push_create(event)
            if push.status == "synced" and push.event is not None:
                event = push.event

        message = self._notify(
            push,
            event.id,
            done="Event created successfully",
            synced="Event synced to {provider}",
            local_only="Event saved locally",
        )
        return MutationResult(event=event, push=push, message=message)

    async def update_event(self, event_id: str, patch: dict) -> MutationResult:
        unknown = set(patch) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        existing = self.get_event(event_id)
        validate_event_data(patch, existing=existing.to_dict())

        event = self.store.update(event_id, patch)
        logger.info("event_updated", event_id=event_id, fields=sorted(patch))

        push = None
        if self.reconciler is not None and not event.is_local:
            push = await self.reconciler.push_update(event)

        message = self._notify(
            push,
            event_id,
            done="Event updated successfully",
            synced="Event updated and synced to {provider}",
            local_only="Event updated locally",
        )
        return MutationResult(event=event, push=push, message=message)

    async def delete_event(self, event_id: str) -> MutationResult:
        self.get_event(event_id)
        self.store.soft_delete(event_id)
        event = self.store.get_by_id(event_id)
        logger.info("event_deleted", event_id=event_id)

        push = None
        if self.reconciler is not None and not event.is_local:
            push = await self.reconciler.push_delete(event)

        message = self._notify(
            push,
            event_id,
            done="Event deleted successfully",
            synced="Event deleted and removed from {provider}",
            local_only="Event deleted locally",
        )
        return MutationResult(event=event, push=push, message=message)

    async def reschedule(self, event_id: str, new_start: datetime) -> RescheduleResult:
        return await self.rescheduler.reschedule(event_id, new_start)

    def drag_session(self, snap_minutes: int | None = None) -> DragSession:
        return DragSession(self.rescheduler, snap_minutes=snap_minutes)
