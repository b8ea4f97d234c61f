"""
Exception taxonomy for the calendar core.

Only ValidationError blocks a mutation. Everything raised by a provider is a
SyncError and is absorbed by the reconciler as an advisory notice.
"""


class CalendarError(Exception):
    """Base class for calendar errors."""


class ValidationError(CalendarError, ValueError):
    """Event data rejected before it reaches the store."""

    def __init__(self, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.details = details or [message]


class EventNotFoundError(CalendarError, LookupError):
    """No local event with the given id."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class SyncError(CalendarError):
    """A call to the remote calendar provider failed."""

    def __init__(
        self,
        message: str,
        operation: str = "",
        status_code: int | None = None,
        provider: str = "",
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.provider = provider

    @property
    def user_message(self) -> str:
        return describe_status(self.status_code, str(self))

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code == 401


class NotFoundError(SyncError):
    """The provider no longer recognizes the external id."""


def describe_status(status_code: int | None, fallback: str) -> str:
    """Map a provider status code to a message fit for a notice."""
    if status_code == 401:
        return "Your calendar session has expired. Please sign out and sign in again."
    if status_code == 403:
        return "Permission denied. Please ensure you have granted calendar access permissions."
    if status_code == 404:
        return "Event not found. It may have been deleted from the remote calendar."
    if status_code == 429:
        return "Too many requests. Please wait a moment and try again."
    if status_code == 503:
        return "Unable to connect to the remote calendar. Please check your internet connection."
    return fallback or "An error occurred with the remote calendar"
