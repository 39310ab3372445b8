"""Middleware configuration for FastAPI application"""
import logging
import time

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from videotube.core.config import settings
from videotube.core.errors import ApiError, error_body
from videotube.core.security import check_rate_limit, get_client_identifier, log_api_access

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("security")

# Never rate limited
EXEMPT_PATHS = {"/metrics", "/api/v1/healthcheck", "/api/v1/healthcheck/ready"}


def get_allowed_origins():
    """Get list of allowed CORS origins"""
    allowed_origins = [settings.CORS_ORIGIN]
    if settings.ENVIRONMENT == "development":
        allowed_origins.extend([
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173"
        ])
    return allowed_origins


def setup_cors_middleware(app):
    """Setup CORS middleware for FastAPI app"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


async def security_middleware(request: Request, call_next):
    """Middleware for rate limiting and API access logging"""
    status_code = 500
    error = None
    started = time.perf_counter()

    try:
        path = request.url.path

        if settings.RATE_LIMIT_ENABLED and path not in EXEMPT_PATHS and request.method != "OPTIONS":
            identifier = get_client_identifier(request)
            is_state_changing = request.method in ["POST", "PATCH", "DELETE", "PUT"]
            if not check_rate_limit(identifier, strict=is_state_changing):
                error = "Rate limit exceeded"
                status_code = 429
                security_logger.warning(f"Rate limit exceeded - Identifier: {identifier}, Path: {path}")
                return JSONResponse(
                    status_code=429,
                    content=error_body(ApiError(429, "Rate limit exceeded. Please try again later."))
                )

        response = await call_next(request)
        status_code = response.status_code
        return response

    except Exception as e:
        error = str(e)
        security_logger.error(f"Security middleware error: {error}", exc_info=True)
        raise
    finally:
        log_api_access(request, status_code, error, (time.perf_counter() - started) * 1000)
