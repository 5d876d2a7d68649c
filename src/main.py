"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.cors import ScopedCORSMiddleware
from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.routes import contact, health, leads, quote_sessions, quotes
from src.core.config import get_settings
from src.services.quote_session_service import shutdown_quote_session_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PUBLIC_API_PREFIX = "/api"
OPEN_CORS_PATHS = frozenset(
    {
        PUBLIC_API_PREFIX + leads.SUBMIT_QUOTE_PATH,
        PUBLIC_API_PREFIX + leads.GET_LEADS_PATH,
    }
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)
    if not settings.is_email_configured:
        logger.warning("RESEND_API_KEY is not set; quote and contact emails will not be sent")

    yield

    # Let abandonment captures that already fired reach the lead store
    await shutdown_quote_session_service()
    logger.info("Quote sessions shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Locum Quote Engine",
        description="Hourly rate quotes and lead capture for locum pharmacist bookings",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # The lead endpoints answer any origin themselves
    app.add_middleware(
        ScopedCORSMiddleware,
        open_paths=OPEN_CORS_PATHS,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-quote-session"],
    )

    # APIError and unhandled exceptions become ErrorResponse bodies
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    # Public endpoints used by the static site
    public_router = APIRouter(prefix=PUBLIC_API_PREFIX)
    public_router.include_router(leads.router)
    public_router.include_router(contact.router)

    # Versioned wizard API
    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(quote_sessions.router)
    api_v1_router.include_router(quotes.router)

    app.include_router(api_v1_router)
    app.include_router(public_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
