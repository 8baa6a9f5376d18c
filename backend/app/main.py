"""Game Reviews Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.api.v1.router import api_v1_router
from app.config import settings
from app.core import background
from app.core.exceptions import ReviewAppException
from app.db.seed import seed_genres
from app.db.session import async_session_factory, engine
from app.models import Base
from app.schemas.common import ErrorResponse
from app.services.cache_service import get_cache_service

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "bad-request",
    401: "unauthenticated",
    403: "unauthorized",
    404: "not-found",
    409: "conflict",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare schema, genres and cache on startup; drain side effects on shutdown."""
    # Startup
    logger.info("Starting Game Reviews API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT} (debug={settings.DEBUG})")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Review schema ready")

        seeded = await seed_genres(async_session_factory)
        logger.info(f"Default genres seeded: {seeded}")
    except Exception as e:
        logger.error(f"Could not prepare review schema or genres: {e}", exc_info=True)

    try:
        cache = get_cache_service()
        if await cache.health_check():
            logger.info("Hotspot cache reachable")
        else:
            logger.warning("Hotspot cache unreachable, serving hotspots uncached")
    except Exception as e:
        logger.warning(f"Hotspot cache setup failed: {e}")

    yield

    # Shutdown
    logger.info("Shutting down Game Reviews API server...")

    drained = await background.drain()
    logger.info(f"Waited on {drained} pending side-effect tasks")

    try:
        cache = get_cache_service()
        await cache.close()
        logger.info("Hotspot cache closed")
    except Exception as e:
        logger.warning(f"Hotspot cache did not close cleanly: {e}")


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    body = ErrorResponse(message=message, error=code)
    return JSONResponse(body.model_dump(), status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"message": ..., "error": <code>}``."""

    @app.exception_handler(ReviewAppException)
    async def app_exception_handler(request: Request, exc: ReviewAppException):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        code = _HTTP_ERROR_CODES.get(exc.status_code, "internal-server-error")
        return _error_response(exc.status_code, str(exc.detail), code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
        else:
            message = "Invalid request"
        return _error_response(400, message, "bad-request")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return _error_response(500, "Something went wrong", "internal-server-error")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Game Reviews API",
        description="Game catalog, reviews, voting and reviewer hotspots",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            settings.FRONTEND_URL,
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Register API v1 router
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Game Reviews API",
            "version": "0.1.0",
            "docs": "/docs" if settings.DEBUG else None,
            "health": "/api/v1/health",
        }

    return app


app = create_app()
