"""
Drag-to-reschedule.

A drag is the message sequence begin -> move_to* -> commit | cancel. Commit
moves the event's start and keeps its duration exactly, writes locally, then
pushes to the provider for provider-sourced events.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from core.config import CALENDAR_TIMEZONE
from core.database import EventStore
from core.errors import EventNotFoundError, ValidationError
from core.logging_config import get_logger
from models.events import CalendarEvent
from services.notices import NoticeBoard
from services.reconciler import PushOutcome, SyncReconciler

logger = get_logger(__name__)


@dataclass
class RescheduleResult:
    event: CalendarEvent
    push: PushOutcome | None
    message: str

    @property
    def synced(self) -> bool:
        return self.push is not None and self.push.status == "synced"


class RescheduleHandler:
    """Applies a new start time to an event while preserving its duration."""

    def __init__(
        self,
        store: EventStore,
        reconciler: SyncReconciler | None = None,
        notices: NoticeBoard | None = None,
    ):
        self.store = store
        self.reconciler = reconciler
        self.notices = notices if notices is not None else NoticeBoard()

    async def reschedule(self, event_id: str, new_start: datetime) -> RescheduleResult:
        if new_start.tzinfo is None:
            raise ValidationError("new_start must be timezone-aware")

        event = self.store.get_by_id(event_id)
        if event is None or event.is_deleted:
            raise EventNotFoundError(event_id)

        duration = event.end_time - event.start_time
        updated = self.store.update(
            event_id, {"start_time": new_start, "end_time": new_start + duration}
        )
        logger.info(
            "event_rescheduled",
            event_id=event_id,
            start_time=updated.start_time.isoformat(),
            end_time=updated.end_time.isoformat(),
        )

        push = None
        if not updated.is_local and self.reconciler is not None:
            push = await self.reconciler.push_update(updated)

        if push is None or push.status == "skipped":
            message = "Event rescheduled successfully"
            level = "success"
        elif push.failed:
            message = push.failure_message("Event rescheduled locally")
            level = "warning"
        else:
            message = f"Event rescheduled and synced to {self.reconciler.provider_name}"
            level = "success"

        self.notices.post(level, message, event_id=event_id)
        return RescheduleResult(event=updated, push=push, message=message)


def drop_on_day(event: CalendarEvent, target_day: date, tz: ZoneInfo | None = None) -> datetime | None:
    """
    New start for a drop onto a day cell: same time of day, new date.

    None when the event already starts on that day.
    """
    start = event.start_time.astimezone(tz or ZoneInfo(CALENDAR_TIMEZONE))
    if start.date() == target_day:
        return None
    return start.replace(year=target_day.year, month=target_day.month, day=target_day.day)


class DragSession:
    """State of one drag gesture over the calendar."""

    def __init__(self, handler: RescheduleHandler, snap_minutes: int | None = None):
        self.handler = handler
        self.snap_minutes = snap_minutes
        self.event: CalendarEvent | None = None
        self.candidate_start: datetime | None = None

    @property
    def active(self) -> bool:
        return self.event is not None

    def _snap(self, moment: datetime) -> datetime:
        if not self.snap_minutes:
            return moment
        step = timedelta(minutes=self.snap_minutes)
        midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
        steps = round((moment - midnight) / step)
        return midnight + steps * step

    def begin(self, event_id: str) -> CalendarEvent:
        if self.active:
            raise RuntimeError("A drag is already in progress")
        event = self.handler.store.get_by_id(event_id)
        if event is None or event.is_deleted:
            raise EventNotFoundError(event_id)
        self.event = event
        self.candidate_start = event.start_time
        return event

    def move_to(self, candidate: datetime) -> tuple[datetime, datetime]:
        """Preview (start, end) for the current pointer position."""
        if self.event is None:
            raise RuntimeError("No drag in progress")
        self.candidate_start = self._snap(candidate)
        return self.candidate_start, self.candidate_start + self.event.duration

    async def commit(self, final: datetime | None = None) -> RescheduleResult | None:
        """Apply the drop. None when the event did not move."""
        if self.event is None:
            raise RuntimeError("No drag in progress")
        event = self.event
        new_start = self._snap(final) if final is not None else self.candidate_start
        self.event = None
        self.candidate_start = None

        if new_start == event.start_time:
            return None
        return await self.handler.reschedule(event.id, new_start)

    def cancel(self) -> None:
        self.event = None
        self.candidate_start = None
