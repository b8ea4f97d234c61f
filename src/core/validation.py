"""
Event validation.

Collects every problem with a create/update payload and raises a single
ValidationError before anything is written.
"""

from datetime import datetime

from core.config import LOCAL_SOURCE, PROVIDER_SOURCES, VALID_EVENT_COLORS, VALID_REPEAT_VALUES
from core.errors import ValidationError


def validate_interval(start_time: datetime, end_time: datetime) -> None:
    """Raise ValidationError unless start_time <= end_time."""
    if start_time > end_time:
        raise ValidationError(
            "Event start must not be after its end",
            details=[f"start_time {start_time.isoformat()} is after end_time {end_time.isoformat()}"],
        )


def validate_event_data(data: dict, existing: dict | None = None) -> None:
    """
    Validate a create payload, or an update patch merged over `existing`.

    Checks:
    1. Title is present on create
    2. start_time <= end_time and both are timezone-aware
    3. repeat/color/source values are known
    4. notify_before is a non-negative number of minutes
    5. Provider-sourced events carry an external_id
    """
    merged = {**(existing or {}), **data}
    errors = []

    if existing is None and not (merged.get("title") or "").strip():
        errors.append("Missing title")

    start_time = merged.get("start_time")
    end_time = merged.get("end_time")
    if start_time is None:
        errors.append("Missing start_time")
    if end_time is None:
        errors.append("Missing end_time")
    if isinstance(start_time, datetime) and start_time.tzinfo is None:
        errors.append("start_time must be timezone-aware")
    if isinstance(end_time, datetime) and end_time.tzinfo is None:
        errors.append("end_time must be timezone-aware")
    if (
        isinstance(start_time, datetime)
        and isinstance(end_time, datetime)
        and start_time.tzinfo is not None
        and end_time.tzinfo is not None
        and start_time > end_time
    ):
        errors.append(
            f"start_time {start_time.isoformat()} is after end_time {end_time.isoformat()}"
        )

    repeat = merged.get("repeat", "none")
    if repeat not in VALID_REPEAT_VALUES:
        errors.append(f"Invalid repeat value '{repeat}'")

    color = merged.get("color", "blue")
    if color not in VALID_EVENT_COLORS:
        errors.append(f"Invalid color '{color}'")

    notify_before = merged.get("notify_before")
    if notify_before is not None and (not isinstance(notify_before, int) or notify_before < 0):
        errors.append(f"notify_before must be a non-negative number of minutes, got {notify_before!r}")

    source = merged.get("source", LOCAL_SOURCE)
    if source != LOCAL_SOURCE and source not in PROVIDER_SOURCES:
        errors.append(f"Unknown event source '{source}'")
    elif source != LOCAL_SOURCE and not merged.get("external_id"):
        errors.append(f"Events from '{source}' require an external_id")

    if errors:
        raise ValidationError("Invalid event data", details=errors)
