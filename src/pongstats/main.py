# src/pongstats/main.py

"""Main FastAPI application for pongstats."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .api import match, player, stats
from .db.models import Base
from .db.session import engine
from .exceptions import (
    PongStatsError,
    ResourceNotFoundError,
    StatsError,
    ValidationError,
)
from .middleware.logging import RequestLoggingMiddleware
from .stats.cache import InMemoryStatsCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown events."""
    # Startup: create missing tables and give the app its own stats cache
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    app.state.stats_cache = InMemoryStatsCache()
    logger.info("pongstats started")
    yield
    # Shutdown: Dispose of database connections gracefully
    app.state.stats_cache.clear()
    await engine.dispose()


app = FastAPI(title="pongstats API", lifespan=lifespan)

# Add middleware (order matters - first added = outermost)
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Global Exception Handlers
# =============================================================================


def _error_response(status_code: int, exc: PongStatsError, detail: str | None = None):
    return JSONResponse(
        status_code=status_code,
        content={
            "detail": detail or exc.message,
            "error_type": type(exc).__name__,
            "details": exc.details,
        },
    )


@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(
    request: Request, exc: ResourceNotFoundError
) -> JSONResponse:
    """Handle all resource not found errors -> 404."""
    logger.warning("Resource not found: %s", exc.message, extra=exc.details)
    return _error_response(404, exc)


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle all validation errors -> 422."""
    logger.warning("Validation error: %s", exc.message, extra=exc.details)
    return _error_response(422, exc)


@app.exception_handler(StatsError)
async def stats_error_handler(request: Request, exc: StatsError) -> JSONResponse:
    """Handle stats computation errors -> 500."""
    logger.error("Stats error: %s", exc.message, extra=exc.details, exc_info=True)
    return _error_response(500, exc, detail="Stats computation failed")


@app.exception_handler(PongStatsError)
async def pongstats_error_handler(
    request: Request, exc: PongStatsError
) -> JSONResponse:
    """Catch-all for any other pongstats errors -> 500."""
    logger.error("pongstats error: %s", exc.message, extra=exc.details, exc_info=True)
    return _error_response(500, exc)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    """Handle database integrity constraint violations."""
    error_msg = str(exc.orig) if exc.orig else str(exc)
    logger.warning("Database integrity error: %s", error_msg)

    # Unique constraint violations -> 409 Conflict
    if "UNIQUE constraint failed" in error_msg or "duplicate key" in error_msg:
        return JSONResponse(
            status_code=409,
            content={"detail": "Resource already exists with given unique field(s)"},
        )

    # Foreign key violations -> 400 Bad Request
    fk_error = "FOREIGN KEY constraint failed" in error_msg
    if fk_error or "violates foreign key" in error_msg:
        return JSONResponse(
            status_code=400,
            content={"detail": "Referenced resource does not exist"},
        )

    return JSONResponse(
        status_code=400,
        content={"detail": "Database constraint violation"},
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Catch-all for other SQLAlchemy database errors."""
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal database error occurred"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred"},
    )


# Include routers into the main application
app.include_router(player.router)
app.include_router(match.router)
app.include_router(stats.router)


@app.get("/", tags=["Root"])
async def read_root() -> dict[str, str]:
    """Provides a welcome message."""
    return {"message": "Welcome to the pongstats API"}


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}
