"""FastAPI application entry point.

Game Data Engine API - cached RAWG datasets and JSON Query analytics.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gamedata.errors import GameDataError
from gamedata.routes import api_router
from gamedata.schemas import ErrorResponse
from gamedata.services.rawg_client import close_rawg_client
from gamedata.settings import get_settings
from gamedata.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Initialize Redis (skip in tests if no Redis available)
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    yield

    # Shutdown
    await close_rawg_client()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Cached RAWG game datasets with JSON Query analytics",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GameDataError)
    async def game_data_exception_handler(request: Request, exc: GameDataError) -> JSONResponse:
        """Render domain errors with their own status code and error code."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(f"[api] {exc.code} path={request.url.path} message={exc.message}")
        return JSONResponse(status_code=exc.status_code, content=ErrorResponse.from_error(exc).model_dump())

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"[api] unhandled_error path={request.url.path}")
        message = str(exc) if settings.debug else "Internal server error"
        return JSONResponse(status_code=500, content=ErrorResponse.internal(message).model_dump())

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "gamedata.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
