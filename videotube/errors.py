"""API error hierarchy and the handlers that render it as the error envelope."""
from __future__ import annotations

from typing import Any, List, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidIdentifier(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid id"


class ValidationFailed(ApiError):
    status_code = 422
    default_message = "Validation failed"


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized request"


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not own this resource"


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class Conflict(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Resource already exists"


class UpstreamFailure(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Upstream operation failed"


def error_envelope(status_code: int, message: str, errors: Optional[List[Any]] = None) -> dict:
    return {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": jsonable_encoder(errors or []),
    }


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, exc.message, exc.errors),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = ValidationFailed.status_code
    return JSONResponse(
        status_code=code,
        content=error_envelope(code, ValidationFailed.default_message, list(exc.errors())),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, message),
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database operation failed", path=request.url.path, exc_info=exc)
    failure = UpstreamFailure("Database operation failed")
    return JSONResponse(
        status_code=failure.status_code,
        content=error_envelope(failure.status_code, failure.message),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=ApiError.status_code,
        content=error_envelope(ApiError.status_code, ApiError.default_message),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
