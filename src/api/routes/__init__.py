"""API route modules."""

from .events import router as events_router
from .health import router as health_router
from .layout import router as layout_router
from .sync import router as sync_router

__all__ = ["events_router", "health_router", "layout_router", "sync_router"]
