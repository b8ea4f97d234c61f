"""
Overlap layout for day, week and month views.

Events on a day are packed into columns first-fit. Events connected by a
chain of overlaps form a cluster, and widths are computed per cluster so a
busy morning never narrows a lone afternoon event.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from core.config import CALENDAR_TIMEZONE, HOUR_HEIGHT_PX, MIN_EVENT_HEIGHT_PX, MONTH_CELL_MAX_EVENTS
from models.events import CalendarEvent
from services.time_window import TimeWindow, day_bounds, resolve_window

# Occupancy of a zero-duration event, so identical point events never share a column
POINT_EVENT_SPAN = timedelta(microseconds=1)


@dataclass
class EventLayout:
    """Render geometry for one event on one day."""

    event: CalendarEvent
    top: float
    height: float
    column: int
    column_count: int
    cluster: int

    @property
    def width_percent(self) -> float:
        return 100 / self.column_count

    @property
    def left_percent(self) -> float:
        return self.column / self.column_count * 100


@dataclass
class MonthCell:
    """One day cell of the month grid."""

    day: date
    in_month: bool
    is_today: bool
    events: list[CalendarEvent] = field(default_factory=list)
    hidden_count: int = 0


@dataclass
class _Placement:
    event: CalendarEvent
    start: datetime
    end: datetime
    column: int = 0
    cluster: int = 0

    @property
    def occupied_until(self) -> datetime:
        return self.end if self.end > self.start else self.start + POINT_EVENT_SPAN


def _clip(event: CalendarEvent, day_start: datetime, day_end: datetime) -> tuple[datetime, datetime] | None:
    """Clip to [day_start, day_end); None when nothing of the event is left."""
    start = max(event.start_time, day_start)
    end = min(event.end_time, day_end)
    if start >= day_end:
        return None
    if event.start_time == event.end_time:
        return (start, end) if event.start_time >= day_start else None
    if end <= start:
        return None
    return start, end


def _wall_minutes(moment: datetime, day: date, tz: ZoneInfo) -> float:
    """Minutes since local midnight of day as read on the wall clock; next midnight is 1440."""
    local = moment.astimezone(tz)
    if local.date() > day:
        return 24 * 60
    return local.hour * 60 + local.minute + (local.second + local.microsecond / 1_000_000) / 60


def layout_day(
    events: list[CalendarEvent],
    day: date,
    tz: ZoneInfo | None = None,
    hour_height: float = HOUR_HEIGHT_PX,
    min_height: float = MIN_EVENT_HEIGHT_PX,
) -> list[EventLayout]:
    """
    Compute {top, height, column, column_count} for every event on a day.

    Output is in placement order: clipped start ascending, ties by id.
    """
    tz = tz or ZoneInfo(CALENDAR_TIMEZONE)
    day_start, day_end = day_bounds(day, tz)
    px_per_minute = hour_height / 60

    placements = []
    for event in events:
        if event.is_deleted:
            continue
        clipped = _clip(event, day_start, day_end)
        if clipped is not None:
            placements.append(_Placement(event, *clipped))

    placements.sort(key=lambda p: (p.start, p.event.id))

    # First-fit column packing; column_ends[i] is when column i frees up
    column_ends: list[datetime] = []
    # Connected components of the overlap graph. Input is sorted by start,
    # so an event joins the open cluster iff it starts before the cluster ends.
    cluster_columns: list[int] = []
    cluster_end: datetime | None = None

    for placement in placements:
        for index, column_end in enumerate(column_ends):
            if column_end <= placement.start:
                placement.column = index
                column_ends[index] = placement.occupied_until
                break
        else:
            placement.column = len(column_ends)
            column_ends.append(placement.occupied_until)

        if cluster_end is None or placement.start >= cluster_end:
            cluster_columns.append(0)
            cluster_end = placement.occupied_until
        else:
            cluster_end = max(cluster_end, placement.occupied_until)
        placement.cluster = len(cluster_columns) - 1
        cluster_columns[-1] = max(cluster_columns[-1], placement.column + 1)

    layouts = []
    for placement in placements:
        start_minutes = _wall_minutes(placement.start, day, tz)
        end_minutes = _wall_minutes(placement.end, day, tz)
        top = start_minutes * px_per_minute
        height = max((end_minutes - start_minutes) * px_per_minute, min_height)
        layouts.append(
            EventLayout(
                event=placement.event,
                top=top,
                height=height,
                column=placement.column,
                column_count=cluster_columns[placement.cluster],
                cluster=placement.cluster,
            )
        )
    return layouts


def layout_week(
    events: list[CalendarEvent],
    window: TimeWindow,
    tz: ZoneInfo | None = None,
    hour_height: float = HOUR_HEIGHT_PX,
    min_height: float = MIN_EVENT_HEIGHT_PX,
) -> dict[date, list[EventLayout]]:
    """Lay out each day of a (week) window independently."""
    return {
        day: layout_day(events, day, tz=tz, hour_height=hour_height, min_height=min_height)
        for day in window.days()
    }


def current_time_marker(
    now: datetime,
    day: date,
    tz: ZoneInfo | None = None,
    hour_height: float = HOUR_HEIGHT_PX,
) -> float | None:
    """Top offset of the 'now' line, or None unless the rendered day is today."""
    tz = tz or ZoneInfo(CALENDAR_TIMEZONE)
    local_now = now.astimezone(tz)
    if local_now.date() != day:
        return None
    return _wall_minutes(local_now, day, tz) * (hour_height / 60)


def month_grid(
    events: list[CalendarEvent],
    anchor: date,
    today: date,
    week_starts_on: int | None = None,
    tz: ZoneInfo | None = None,
    max_visible: int = MONTH_CELL_MAX_EVENTS,
) -> list[list[MonthCell]]:
    """
    Whole-week rows covering the anchor's month.

    Events are bucketed by the day they start on and sorted by start time;
    cells show at most max_visible events plus a hidden count.
    """
    tz = tz or ZoneInfo(CALENDAR_TIMEZONE)
    if week_starts_on is None:
        window = resolve_window(anchor, "month", tz=tz)
    else:
        window = resolve_window(anchor, "month", week_starts_on=week_starts_on, tz=tz)

    by_day: dict[date, list[CalendarEvent]] = {}
    for event in sorted(events, key=lambda e: (e.start_time, e.id)):
        if event.is_deleted:
            continue
        by_day.setdefault(event.start_time.astimezone(tz).date(), []).append(event)

    rows: list[list[MonthCell]] = []
    for index, day in enumerate(window.days()):
        if index % 7 == 0:
            rows.append([])
        day_events = by_day.get(day, [])
        rows[-1].append(
            MonthCell(
                day=day,
                in_month=day.month == anchor.month,
                is_today=day == today,
                events=day_events[:max_visible],
                hidden_count=max(len(day_events) - max_visible, 0),
            )
        )
    return rows
