"""API request/response models."""

from .requests import EventCreateRequest, EventUpdateRequest, RescheduleRequest
from .responses import ErrorCodes, ErrorResponse, HealthResponse

__all__ = [
    "ErrorCodes",
    "ErrorResponse",
    "EventCreateRequest",
    "EventUpdateRequest",
    "HealthResponse",
    "RescheduleRequest",
]
