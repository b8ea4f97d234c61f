"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import events_router, health_router, layout_router, sync_router
from core.config import API_DEBUG, API_VERSION, DB_PATH
from core.database import EventStore
from core.errors import EventNotFoundError, ValidationError
from core.logging_config import get_logger, setup_logging
from core.sync_log import log_sync_run
from services.calendar import build_provider_from_config
from services.events import CalendarService

logger = get_logger(__name__)


def build_calendar_service() -> CalendarService:
    """CalendarService wired from environment configuration."""
    provider = build_provider_from_config()
    service = CalendarService(
        EventStore(DB_PATH),
        provider=provider,
        run_logger=partial(log_sync_run, db_path=DB_PATH),
    )
    if provider is not None:
        service.scheduler.connect()
    return service


def create_app(calendar_service: CalendarService | None = None) -> FastAPI:
    """
    Build the application.

    Pass a ready CalendarService to skip environment wiring and logging
    setup (tests do).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        if calendar_service is None:
            # Started from the environment (uvicorn api.main:app)
            setup_logging()
            service = build_calendar_service()
        else:
            service = calendar_service
        app.state.calendar = service

        # Startup: periodic sync plus a catch-up sync if the last one is stale
        service.scheduler.mount()
        logger.info("api_started", provider=service.scheduler.provider_name)

        yield

        # Shutdown: no timer may outlive the app
        await service.scheduler.unmount()

    app = FastAPI(
        title="Calendar API",
        description="Local-first calendar with provider sync",
        version=API_VERSION,
        debug=API_DEBUG,
        lifespan=lifespan,
    )

    # CORS middleware (for development)
    if API_DEBUG:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error="Event validation failed",
                code=ErrorCodes.VALIDATION_ERROR,
                details=exc.details,
            ).model_dump(),
        )

    @app.exception_handler(EventNotFoundError)
    async def not_found_exception_handler(request: Request, exc: EventNotFoundError):
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(
                error="Event not found",
                code=ErrorCodes.EVENT_NOT_FOUND,
                details=[exc.event_id],
            ).model_dump(),
        )

    # Global exception handler for unexpected errors
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with standard error format."""
        logger.exception("unhandled_error", path=request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="Internal server error",
                code=ErrorCodes.INTERNAL_ERROR,
                details=[],
            ).model_dump(),
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(events_router)
    app.include_router(layout_router)
    app.include_router(sync_router)

    return app


app = create_app()


# Entry point for uvicorn
if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run(
        "api.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=API_DEBUG,
    )
