"""Health check API routes"""
import logging

from fastapi import APIRouter
from opentelemetry import trace
from pymongo.errors import PyMongoError

from videotube.core.errors import ApiError, ApiResponse
from videotube.core.metrics import healthcheck_requests_counter
from videotube.db import mongo
from videotube.services.search import client as search_client

router = APIRouter(prefix="/api/v1/healthcheck", tags=["healthcheck"])
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@router.get("")
@router.get("/", include_in_schema=False)
def healthcheck():
    """Liveness probe"""
    with tracer.start_as_current_span("healthcheck") as span:
        healthcheck_requests_counter.labels(route="healthcheck").inc()
        span.set_attribute("healthcheck.status", "ok")
        return ApiResponse(200, "OK", "Health Check Passed")


@router.get("/ready")
def readiness():
    """Readiness probe: MongoDB must answer, search may be degraded"""
    healthcheck_requests_counter.labels(route="ready").inc()
    checks = {"database": "ok", "search": "ok"}

    try:
        mongo.ping()
    except PyMongoError as e:
        logger.error(f"Readiness check failed, MongoDB unreachable: {e}")
        raise ApiError(503, "Database unavailable", [{"database": "unavailable"}])

    try:
        if not search_client.ping():
            checks["search"] = "degraded"
    except Exception as e:
        logger.warning(f"Search cluster unreachable during readiness check: {e}")
        checks["search"] = "degraded"

    return ApiResponse(200, checks, "Service ready")
