"""
Signup API - Main Application Entry Point

An event registration backend providing:
- Window-gated signup (guests and others open at different instants)
- Server-sent events announcing when each window opens
- A single database connection that reconnects on its own
- Fire-and-forget confirmation email
"""

import os
import signal
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from signup_api.api.deps import get_keeper
from signup_api.api.middleware import RequestLoggingMiddleware
from signup_api.api.router import api_router
from signup_api.core.config import get_settings
from signup_api.core.exceptions import (
    FatalDatabaseError,
    PersistenceError,
    SignupWindowClosed,
    TransientDatabaseError,
)
from signup_api.core.logging import get_logger, setup_logging
from signup_api.core.metrics import metrics_endpoint
from signup_api.db.connection import ConnectionKeeper
from signup_api.services.mail_service import Mailer, drain_background_tasks
from signup_api.services.schedule import load_schedule
from signup_api.services.window_events import WindowEventPublisher

settings = get_settings()
logger = get_logger(__name__)


def request_shutdown(exc: BaseException) -> None:
    """Stop serving once the database can no longer be reached for a non-transient reason."""
    logger.critical("shutdown_requested", reason="fatal_database_error", error=str(exc))
    os.kill(os.getpid(), signal.SIGTERM)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    schedule = load_schedule(settings)
    keeper = ConnectionKeeper(
        settings.DATABASE_URL,
        reconnect_delay=settings.DB_RECONNECT_DELAY_SECONDS,
        on_fatal=request_shutdown,
    )
    await keeper.start()

    app.state.schedule = schedule
    app.state.keeper = keeper
    app.state.publisher = WindowEventPublisher(schedule, settings.SSE_KEEPALIVE_SECONDS)
    app.state.mailer = Mailer(settings)

    yield

    app.state.publisher.close()
    await drain_background_tasks()
    await keeper.close()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event signup API with scheduled registration windows",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(SignupWindowClosed)
async def signup_window_closed_handler(request: Request, exc: SignupWindowClosed):
    return Response(status_code=status.HTTP_405_METHOD_NOT_ALLOWED)


@app.exception_handler(TransientDatabaseError)
async def transient_database_handler(request: Request, exc: TransientDatabaseError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Database temporarily unavailable, try again shortly"},
        headers={"Retry-After": str(int(settings.DB_RECONNECT_DELAY_SECONDS))},
    )


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError):
    logger.error("persistence_failed", error=str(exc))
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.exception_handler(FatalDatabaseError)
async def fatal_database_handler(request: Request, exc: FatalDatabaseError):
    logger.critical("database_unusable", error=str(exc))
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.get("/health", tags=["Health"])
async def health_check(keeper: ConnectionKeeper = Depends(get_keeper)):
    """Health check endpoint for Docker and load balancers."""
    if keeper.fatal_error is not None:
        database = "failed"
    elif keeper.connected:
        database = "connected"
    else:
        database = "reconnecting"
    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


def mount_static(application: FastAPI, directory: str) -> bool:
    """
    Serve `directory` at / behind every API route.

    Dotfiles are served too, so ACME challenges under .well-known reach the
    certificate client. A missing directory mounts nothing.
    """
    if not os.path.isdir(directory):
        logger.info("static_files_skipped", directory=directory)
        return False
    application.mount("/", StaticFiles(directory=directory), name="static")
    return True


# Last, so the catch-all mount never shadows an API route
mount_static(app, settings.STATIC_DIR)
