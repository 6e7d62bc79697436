import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logfire

from appointment_lifecycle.config import Settings, settings
from appointment_lifecycle.database import AsyncSessionLocal, init_db, close_db
from appointment_lifecycle.api import api_router
from appointment_lifecycle.errors import (
    AppointmentError,
    AppointmentNotFound,
    CatalogEntryNotFound,
    ConcurrentModification,
    IllegalTransition,
    NotAuthorizedForAppointment,
    SlotConflict,
    StoreUnavailable,
    TooLateToCancel,
    ValidationFailed,
)
from appointment_lifecycle.services.directory import Directory
from appointment_lifecycle.services.lifecycle import AppointmentLifecycleEngine
from appointment_lifecycle.services.notifications import (
    EmailSink,
    NotificationDispatcher,
    build_email_sink,
)
from appointment_lifecycle.services.scheduler import AppointmentScheduler
from appointment_lifecycle.services.store import AppointmentStore

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Logfire - auto-instruments FastAPI
if settings.logfire_token:
    logfire.configure(
        token=settings.logfire_token,
        service_name="appointment-lifecycle",
        environment=settings.app_env,
        console=False,  # Disable console logging (too verbose)
    )
    logger.info("Logfire initialized")
else:
    logger.info("Logfire token not set - observability disabled")

ERROR_STATUS_CODES = {
    ValidationFailed: 400,
    SlotConflict: 409,
    IllegalTransition: 409,
    ConcurrentModification: 409,
    TooLateToCancel: 400,
    NotAuthorizedForAppointment: 403,
    AppointmentNotFound: 404,
    CatalogEntryNotFound: 404,
    StoreUnavailable: 503,
}


@dataclass
class Components:
    store: AppointmentStore
    directory: Directory
    engine: AppointmentLifecycleEngine
    scheduler: AppointmentScheduler


def build_components(
    app_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    sink: EmailSink | None = None,
) -> Components:
    """Wire store, directory, notifications, engine and scheduler together."""
    store = AppointmentStore(session_factory, app_settings)
    directory = Directory(session_factory)
    notifier = NotificationDispatcher(sink or build_email_sink(app_settings), directory)
    engine = AppointmentLifecycleEngine(store, directory, notifier, app_settings)
    scheduler = AppointmentScheduler(engine, store, app_settings)
    return Components(store=store, directory=directory, engine=engine, scheduler=scheduler)


def attach(app: FastAPI, components: Components):
    app.state.engine = components.engine
    app.state.scheduler = components.scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Appointment Lifecycle API...")
    await init_db()
    logger.info("Database initialized")

    components = build_components(settings, AsyncSessionLocal)
    attach(app, components)
    if settings.scheduler_enabled:
        components.scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    components.scheduler.stop()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.app_name,
    description="Appointment lifecycle engine with geo-fenced check-in",
    version="1.0.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
if settings.logfire_token:
    logfire.instrument_fastapi(app)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppointmentError)
async def appointment_error_handler(request: Request, exc: AppointmentError):
    """Map lifecycle failures to HTTP responses."""
    status_code = 400
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            status_code = ERROR_STATUS_CODES[error_type]
            break
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": "1.0.0",
    }


@app.get("/health")
async def health_check():
    """Detailed health check."""
    scheduler = getattr(app.state, "scheduler", None)
    return {
        "status": "healthy",
        "database": "connected",
        "scheduler": "running" if scheduler and scheduler.scheduler.running else "stopped",
        "email": "resend" if settings.resend_api_key else "log_only",
    }
