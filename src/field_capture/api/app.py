"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from field_capture.api.captures import router as captures_router
from field_capture.app_logging import configure_logging
from field_capture.containers import AppContainer
from field_capture.domain.errors import RecordStoreError, StoreReadError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.container.registry.release()
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(captures_router)

    @app.exception_handler(StoreReadError)
    @app.exception_handler(RecordStoreError)
    async def store_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.warning("Record store failure: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
