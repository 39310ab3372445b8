"""Uniform API errors, the success envelope and the error translator"""
import logging
import traceback
from typing import Any, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from videotube.core.config import settings

logger = logging.getLogger(__name__)

BSON_ENCODERS = {ObjectId: str}


class ApiError(Exception):
    """Error raised by services and dependencies, rendered as a JSON error body"""

    def __init__(
        self,
        status_code: int,
        message: str = "Something went wrong",
        errors: Optional[List[Any]] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class ApiResponse(JSONResponse):
    """Success envelope: status_code, data, message, success"""

    def __init__(self, status_code: int = 200, data: Any = None, message: str = "Success", **kwargs):
        content = {
            "status_code": status_code,
            "data": jsonable_encoder(data, custom_encoder=BSON_ENCODERS),
            "message": message,
            "success": status_code < 400,
        }
        super().__init__(content=content, status_code=status_code, **kwargs)


def error_body(error: ApiError, stack: Optional[str] = None) -> dict:
    body = {
        "status_code": error.status_code,
        "data": None,
        "message": error.message,
        "success": False,
        "errors": jsonable_encoder(error.errors, custom_encoder=BSON_ENCODERS),
    }
    if stack and settings.ENVIRONMENT == "development":
        body["stack"] = stack
    return body


def validation_errors(raw_errors) -> List[dict]:
    """Flatten pydantic error dicts to [{field, message}]"""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in raw_errors
    ]


def normalize_exception(exc: Exception) -> ApiError:
    """Map any exception onto an ApiError"""
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, (RequestValidationError, ValidationError)):
        return ApiError(400, "Validation failed", validation_errors(exc.errors()))
    if isinstance(exc, StarletteHTTPException):
        return ApiError(exc.status_code, str(exc.detail))
    if isinstance(exc, DuplicateKeyError):
        return ApiError(409, "Resource already exists", [exc.details or {}])
    if isinstance(exc, InvalidId):
        return ApiError(400, str(exc) or "Invalid id")
    return ApiError(500, "Internal server error")


async def api_exception_handler(request: Request, exc: Exception):
    """Translate every error into the same JSON shape"""
    error = normalize_exception(exc)
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    if error.status_code >= 500:
        logger.error(
            f"Error occurred: {error.message} - {request.method} {request.url.path}: {exc}",
            exc_info=exc
        )
    else:
        logger.info(f"Request failed ({error.status_code}): {error.message} - {request.method} {request.url.path}")

    return JSONResponse(status_code=error.status_code, content=error_body(error, stack))


def register_exception_handlers(app: FastAPI) -> None:
    """Funnel every error type through api_exception_handler"""
    for exc_class in (
        ApiError,
        RequestValidationError,
        ValidationError,
        StarletteHTTPException,
        DuplicateKeyError,
        InvalidId,
        Exception,
    ):
        app.add_exception_handler(exc_class, api_exception_handler)
