"""Quorum FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quorum.api.routes import router as api_router
from quorum.config import VERSION, get_settings
from quorum.lib.exceptions import QuorumError
from quorum.lib.http_client import close_http_client, get_http_client
from quorum.lib.models import HealthResponse
from quorum.lib.persistence import close_round_store, get_round_store
from quorum.lib.streaming import get_event_bus
from quorum.orchestrator import create_round_clock

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    settings = get_settings()

    # Startup
    logger.info("Starting Quorum...")
    logger.info(f"Debug mode: {settings.debug}")

    store = await get_round_store()
    logger.info(f"Round store initialized: {store.get_stats()}")

    client = await get_http_client()
    if not settings.has_random_org_key:
        logger.warning("No random.org API key configured - that source will always be absent")

    clock = create_round_clock(store, client, settings=settings, event_bus=get_event_bus())
    app.state.round_clock = clock
    clock.start()

    yield

    # Shutdown
    logger.info("Shutting down Quorum...")
    await clock.stop()
    await close_http_client()
    await close_round_store()
    logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Quorum",
        description="Round-based digit oracle voting over public entropy sources",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    register_exception_handlers(app)

    # Routes
    app.include_router(api_router, prefix="/api")

    # Root endpoints
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="ok", version=VERSION)

    return app


# =============================================================================
# Exception Handlers
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register custom exception handlers."""

    @app.exception_handler(QuorumError)
    async def quorum_error_handler(request: Request, exc: QuorumError) -> JSONResponse:
        logger.error(f"Quorum error: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"detail": exc.message, "details": exc.details},
        )


# =============================================================================
# Application Instance
# =============================================================================


app = create_app()


def main() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
