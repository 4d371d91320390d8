"""Mapping from domain errors to HTTP responses.

This is the only place that turns domain exceptions into status codes.
Unhandled exceptions are caught by the request-context middleware.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from domain.model.errors import (
    DomainError,
    DuplicateError,
    InvalidCredentialsError,
    NotFoundError,
    PermissionDeniedError,
    StorageUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from utils.logging import correlation_id_var

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_401_UNAUTHORIZED),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateError, status.HTTP_409_CONFLICT),
    (StorageUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(error: DomainError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def internal_error_response(correlation_id: str | None) -> JSONResponse:
    """Generic 500 body. Never includes exception details."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "correlation_id": correlation_id},
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    code = status_for(exc)
    if code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        correlation_id = correlation_id_var.get()
        logger.error(
            "Unhandled domain error",
            extra={"path": request.url.path, "errorType": type(exc).__name__},
            exc_info=exc,
        )
        return internal_error_response(correlation_id)

    if code == status.HTTP_503_SERVICE_UNAVAILABLE:
        logger.warning("Storage unavailable during request", extra={"path": request.url.path})
        return JSONResponse(status_code=code, content={"detail": "Storage unavailable"})

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=code, content={"detail": str(exc)}, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are client errors: 400 instead of FastAPI's default 422."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body", "errors": errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
