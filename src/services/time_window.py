"""
Resolve the date range a calendar view covers.

Week starts use the Sunday=0 convention (0=Sunday ... 6=Saturday).
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterator, Literal
from zoneinfo import ZoneInfo

from core.config import CALENDAR_TIMEZONE, WEEK_STARTS_ON

ViewGranularity = Literal["day", "week", "month"]

VIEW_ALIASES = {
    "day": "day",
    "daily": "day",
    "week": "week",
    "weekly": "week",
    "month": "month",
    "monthly": "month",
}

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive datetime range [start, end]."""

    start: datetime
    end: datetime

    def days(self) -> Iterator[date]:
        """Each calendar date covered by the window."""
        current = self.start.date()
        last = self.end.date()
        while current <= last:
            yield current
            current += timedelta(days=1)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def normalize_view(view: str) -> ViewGranularity:
    """Accept 'day'/'daily', 'week'/'weekly', 'month'/'monthly'."""
    try:
        return VIEW_ALIASES[view.lower()]
    except KeyError:
        raise ValueError(f"Unknown calendar view '{view}'") from None


def _as_date(anchor: date | datetime, tz: ZoneInfo) -> date:
    if isinstance(anchor, datetime):
        if anchor.tzinfo is not None:
            anchor = anchor.astimezone(tz)
        return anchor.date()
    return anchor


def start_of_week(day: date, week_starts_on: int = WEEK_STARTS_ON) -> date:
    # date.weekday() is Monday=0; shift to Sunday=0
    sunday_based = (day.weekday() + 1) % 7
    return day - timedelta(days=(sunday_based - week_starts_on) % 7)


def end_of_week(day: date, week_starts_on: int = WEEK_STARTS_ON) -> date:
    return start_of_week(day, week_starts_on) + timedelta(days=6)


def day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) of a date in tz."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def resolve_window(
    anchor: date | datetime,
    view: str,
    week_starts_on: int = WEEK_STARTS_ON,
    tz: ZoneInfo | None = None,
) -> TimeWindow:
    """
    Resolve the inclusive window a view renders around an anchor date.

    - day: 00:00:00 to 23:59:59.999 of the anchor date
    - week: the week containing the anchor
    - month: from the start of the week holding the 1st to the end of the
      week holding the last day, so the grid has no partial rows
    """
    tz = tz or ZoneInfo(CALENDAR_TIMEZONE)
    granularity = normalize_view(view)
    day = _as_date(anchor, tz)

    if granularity == "day":
        first, last = day, day
    elif granularity == "week":
        first = start_of_week(day, week_starts_on)
        last = end_of_week(day, week_starts_on)
    else:
        month_end = day.replace(day=calendar.monthrange(day.year, day.month)[1])
        first = start_of_week(day.replace(day=1), week_starts_on)
        last = end_of_week(month_end, week_starts_on)

    return TimeWindow(
        start=datetime.combine(first, time.min, tzinfo=tz),
        end=datetime.combine(last, END_OF_DAY, tzinfo=tz),
    )


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day (Jan 31 + 1 month = Feb 28/29)."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))


def shift_anchor(anchor: date, view: str, steps: int) -> date:
    """Page the anchor forward (steps > 0) or back by whole views."""
    granularity = normalize_view(view)
    if granularity == "day":
        return anchor + timedelta(days=steps)
    if granularity == "week":
        return anchor + timedelta(weeks=steps)
    return add_months(anchor, steps)
