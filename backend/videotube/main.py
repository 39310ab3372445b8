"""FastAPI application entry point"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from videotube import __version__
from videotube.core.config import settings
from videotube.core.errors import register_exception_handlers
from videotube.core.logging import setup_logging
from videotube.core.middleware import security_middleware, setup_cors_middleware
from videotube.core.otel import (
    initialize_otel, instrument_fastapi, instrument_redis, setup_otel_logging
)
from videotube.db.mongo import close_db, init_db, ping
from videotube.db.redis import get_redis_client
from videotube.services.search.client import close_search_client
from videotube.services.search.index import ensure_indexes
from videotube.tasks.search_sync import start_search_sync, stop_search_sync

# Import routers
from videotube.api import (
    comments, dashboard, healthcheck, likes, monitoring, playlists,
    search, subscriptions, tweets, users, videos
)

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    # Startup
    otel_initialized = initialize_otel()
    if otel_initialized:
        if setup_otel_logging():
            logger.info(f"OpenTelemetry fully initialized, exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
        else:
            logger.warning("OpenTelemetry metrics/traces initialized but logging setup failed")
        instrument_redis()
    else:
        logger.info("OpenTelemetry not configured - running without distributed tracing")

    logger.info("Initializing database...")
    try:
        ping()
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    logger.info("Testing Redis connection...")
    try:
        get_redis_client().ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        raise

    logger.info("Ensuring search indexes...")
    try:
        ensure_indexes()
        logger.info("Search indexes ready")
    except Exception as e:
        logger.error(f"Search index setup failed, search may be unavailable: {e}")

    if settings.SEARCH_SYNC_ENABLED:
        start_search_sync()
    else:
        logger.info("Search sync disabled")

    yield

    # Shutdown
    logger.info("Shutting down...")
    stop_search_sync()
    close_search_client()
    close_db()


# Create FastAPI app
app = FastAPI(
    title="VideoTube Backend",
    description="Video sharing platform API",
    version=__version__,
    lifespan=lifespan
)

# Instrument FastAPI with OpenTelemetry
instrument_fastapi(app)

# CORS middleware
setup_cors_middleware(app)

# Security middleware (rate limiting, access log)
app.middleware("http")(security_middleware)

# Error translator
register_exception_handlers(app)

# Include routers
app.include_router(healthcheck.router)
app.include_router(users.router)
app.include_router(videos.router)
app.include_router(comments.router)
app.include_router(likes.router)
app.include_router(playlists.router)
app.include_router(subscriptions.router)
app.include_router(tweets.router)
app.include_router(dashboard.router)
app.include_router(search.router)
app.include_router(monitoring.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("videotube.main:app", host="0.0.0.0", port=settings.PORT)
