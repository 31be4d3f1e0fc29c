"""taskdeck - personal task board backed by a hosted PocketBase instance."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.logging import configure_logfire, instrument_fastapi, instrument_httpx
from src.interface.auth_router import router as auth_router
from src.interface.dashboard_router import router as dashboard_router
from src.interface.web_session import boards, watch_auth_state


logger = logging.getLogger(__name__)


async def check_backend_connectivity() -> None:
    """Verify the PocketBase instance answers its health endpoint.

    Raises:
        ConnectionError: If unable to reach the backend
    """
    try:
        url = f"{settings.pocketbase_url.rstrip('/')}/api/health"
        async with httpx.AsyncClient(timeout=settings.api_timeout_seconds) as client:
            response = await client.get(url)
            if response.is_success:
                logger.info("startup_validation", extra={"service": "pocketbase", "status": "ok"})
            else:
                raise ConnectionError(f"PocketBase returned status {response.status_code}")
    except httpx.HTTPError as e:
        logger.error("startup_validation", extra={"service": "pocketbase", "status": "failed", "error": str(e)})
        raise ConnectionError(f"PocketBase connectivity check failed: {e}") from e


async def validate_startup_configuration() -> None:
    """Validate required credentials and backend connectivity, exiting on failure."""
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("secret_key", "Session secret key")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

        await check_backend_connectivity()

        logger.info("startup_validation_complete", extra={"status": "ok"})

    except (ValueError, ConnectionError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()
    await validate_startup_configuration()

    instrument_httpx()
    unsubscribe = watch_auth_state()
    yield
    unsubscribe()
    boards.clear()


app = FastAPI(
    title="taskdeck",
    description="Personal task board backed by PocketBase",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_fastapi(app)

app.include_router(auth_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy", "cached_boards": len(boards)}, status_code=200)
