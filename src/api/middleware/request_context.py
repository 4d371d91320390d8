"""Per-request context: correlation id, body size limit, deadline, catch-all.

Registered as the outermost HTTP middleware so every response, including
413/504/500 produced here, carries the X-Request-ID header.
"""

import asyncio
import logging
import re
import time
import uuid

from fastapi import Request, status
from fastapi.responses import JSONResponse

from api.errors import internal_error_response
from utils.logging import correlation_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._\-]{1,128}$")


def _correlation_id_from(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "")
    if _VALID_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


def _payload_too_large(max_body_bytes: int) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        content={"detail": f"Request body exceeds {max_body_bytes} bytes"},
    )


async def _enforce_body_limit(request: Request, max_body_bytes: int) -> JSONResponse | None:
    """Reject bodies over ``max_body_bytes`` before the handler runs.

    Without a Content-Length (chunked transfer) the body is read here up to
    the limit and cached on the request, which call_next replays downstream.
    """
    raw = request.headers.get("content-length")
    if raw is not None:
        try:
            length = int(raw)
        except ValueError:
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid Content-Length"})
        if length > max_body_bytes:
            return _payload_too_large(max_body_bytes)
        return None

    received = bytearray()
    async for chunk in request.stream():
        received.extend(chunk)
        if len(received) > max_body_bytes:
            return _payload_too_large(max_body_bytes)
    request._body = bytes(received)
    return None


async def request_context_middleware(request: Request, call_next):
    settings = request.app.state.settings
    correlation_id = _correlation_id_from(request)
    token = correlation_id_var.set(correlation_id)
    started = time.perf_counter()
    try:
        response = await _enforce_body_limit(request, settings.max_body_bytes)
        if response is None:
            try:
                response = await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("Request timed out", extra={
                    "method": request.method,
                    "path": request.url.path,
                    "timeoutSeconds": settings.request_timeout_seconds,
                })
                response = JSONResponse(
                    status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                    content={"detail": "Request timed out"},
                )
            except Exception:
                logger.exception("Unhandled error", extra={"method": request.method, "path": request.url.path})
                response = internal_error_response(correlation_id)

        response.headers[REQUEST_ID_HEADER] = correlation_id
        logger.info("Request completed", extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "durationMs": round((time.perf_counter() - started) * 1000, 1),
        })
        return response
    finally:
        correlation_id_var.reset(token)
