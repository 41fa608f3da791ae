"""
Application factory - creates and configures the FastAPI application.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from teamtasks import __version__
from teamtasks.api.routes import ALL_ROUTERS
from teamtasks.dependencies.services import get_services
from teamtasks.exceptions.handlers import setup_exception_handlers
from teamtasks.middleware.logging_setup import setup_logging
from teamtasks.middleware.setup import setup_middleware
from teamtasks.tracing import instrument_fastapi, setup_tracing, tracing_enabled

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize services on startup and clean up expired sessions."""
    logger.info("Application starting up...")

    services = get_services()
    expired = services.db.sessions.clean_expired()
    logger.info(f"Services initialized ({services.db.db_type}); removed {expired} expired sessions")

    yield

    logger.info("Application shutting down...")


def create_app(configure_logging: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        configure_logging: Install the request-ID aware root logging setup.

    Returns:
        Configured FastAPI app instance ready to run.
    """
    if configure_logging:
        setup_logging()

    app = FastAPI(
        title="Team Tasks",
        description="Team task management with role-based access control and change history",
        version=__version__,
        lifespan=lifespan
    )

    setup_middleware(app)
    setup_exception_handlers(app)

    for router in ALL_ROUTERS:
        app.include_router(router)

    if tracing_enabled():
        setup_tracing()
        instrument_fastapi(app)
        logger.info("Distributed tracing enabled")

    return app
