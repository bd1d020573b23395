"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from wellness_sessions.api.sessions import router as sessions_router
from wellness_sessions.app_logging import configure_logging
from wellness_sessions.containers import AppContainer
from wellness_sessions.domain.errors import (
    ConflictError,
    InvariantViolation,
    NotFoundError,
    SessionError,
    TransientFailure,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(title="Wellness Sessions", lifespan=lifespan)
    app.state.container = container

    app.include_router(sessions_router)

    @app.exception_handler(SessionError)
    async def session_error_handler(
        request: Request, exc: SessionError
    ) -> JSONResponse:
        """Translate core errors into HTTP responses."""
        if isinstance(exc, ValidationError):
            return JSONResponse(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                content={"message": "Validation failed", "errors": exc.errors},
            )
        if isinstance(exc, NotFoundError):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"message": "Session not found"},
            )
        if isinstance(exc, ConflictError):
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "message": str(exc),
                    "expected_revision": exc.expected_revision,
                    "current_revision": exc.current_revision,
                },
            )
        if isinstance(exc, TransientFailure):
            logger.warning(
                "Transient failure handling request",
                extra={"path": request.url.path, "error": str(exc)},
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"message": "Temporarily unavailable, please retry"},
            )
        if isinstance(exc, InvariantViolation):
            logger.error(
                "Invariant violation", extra={"path": request.url.path}, exc_info=exc
            )
        else:
            logger.error(
                "Unhandled session error",
                extra={"path": request.url.path},
                exc_info=exc,
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Server error"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
