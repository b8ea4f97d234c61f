"""
Tests for event payload validation and the error taxonomy.
"""

from datetime import datetime

import pytest

from core.errors import NotFoundError, SyncError, ValidationError, describe_status
from core.validation import validate_event_data, validate_interval

from conftest import utc


def test_valid_payload(sample_event):
    validate_event_data(sample_event)


def test_collects_all_problems(sample_event):
    payload = {
        **sample_event,
        "title": "  ",
        "end_time": utc(2026, 2, 15, 8),
        "repeat": "hourly",
        "color": "orange",
        "notify_before": -5,
    }

    with pytest.raises(ValidationError) as exc_info:
        validate_event_data(payload)

    details = exc_info.value.details
    assert "Missing title" in details
    assert any("is after end_time" in d for d in details)
    assert "Invalid repeat value 'hourly'" in details
    assert "Invalid color 'orange'" in details
    assert any("notify_before" in d for d in details)
    assert len(details) == 5


def test_naive_times_rejected(sample_event):
    payload = {**sample_event, "start_time": datetime(2026, 2, 15, 9), "end_time": datetime(2026, 2, 15, 10)}

    with pytest.raises(ValidationError) as exc_info:
        validate_event_data(payload)

    assert "start_time must be timezone-aware" in exc_info.value.details
    assert "end_time must be timezone-aware" in exc_info.value.details


def test_missing_times(sample_event):
    payload = {k: v for k, v in sample_event.items() if k not in ("start_time", "end_time")}

    with pytest.raises(ValidationError) as exc_info:
        validate_event_data(payload)

    assert exc_info.value.details == ["Missing start_time", "Missing end_time"]


def test_patch_validated_against_existing(sample_event):
    # Moving only the start past the stored end is caught
    with pytest.raises(ValidationError):
        validate_event_data({"start_time": utc(2026, 2, 15, 11)}, existing=sample_event)

    # Title is optional on update
    validate_event_data({"location": "Room 5"}, existing={**sample_event, "title": "Kept"})


def test_provider_source_requires_external_id(sample_event):
    with pytest.raises(ValidationError) as exc_info:
        validate_event_data({**sample_event, "source": "outlook"})
    assert exc_info.value.details == ["Events from 'outlook' require an external_id"]

    with pytest.raises(ValidationError):
        validate_event_data({**sample_event, "source": "myspace", "external_id": "X"})

    validate_event_data({**sample_event, "source": "outlook", "external_id": "X"})


def test_validate_interval():
    validate_interval(utc(2026, 2, 15, 9), utc(2026, 2, 15, 9))
    with pytest.raises(ValidationError):
        validate_interval(utc(2026, 2, 15, 10), utc(2026, 2, 15, 9))


def test_validation_error_is_value_error():
    assert isinstance(ValidationError("bad"), ValueError)
    assert ValidationError("bad").details == ["bad"]


class TestSyncError:
    @pytest.mark.parametrize(
        "status_code,fragment",
        [
            (401, "session has expired"),
            (403, "Permission denied"),
            (404, "Event not found"),
            (429, "Too many requests"),
            (503, "Unable to connect"),
        ],
    )
    def test_user_messages(self, status_code, fragment):
        assert fragment in SyncError("raw", status_code=status_code).user_message

    def test_fallback_message(self):
        assert SyncError("Server exploded", status_code=500).user_message == "Server exploded"
        assert describe_status(None, "") == "An error occurred with the remote calendar"

    def test_auth_failure(self):
        assert SyncError("x", status_code=401).is_auth_failure
        assert not SyncError("x", status_code=500).is_auth_failure

    def test_not_found_is_sync_error(self):
        assert issubclass(NotFoundError, SyncError)
