"""
API Middleware - Request/response processing.

Provides:
- Request context: request ID, latency and the job or session a request touches
- ChatLedgerError to HTTP status mapping
- Per-client request throttling on the sliding-window limiter
"""

from __future__ import annotations

import logging
import math
import re
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from chatledger.config.errors import ChatLedgerError, ErrorCode, RateLimited
from chatledger.domains.credentials import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

__all__ = [
    "RequestContextMiddleware",
    "ErrorHandlerMiddleware",
    "RateLimitMiddleware",
    "error_code_to_status",
    "error_response",
]

_WORK_PATH = re.compile(r"^/api/(?:extraction/jobs|monitoring/sessions)/(?P<work_id>[^/]+)")

_UNTHROTTLED = frozenset({"/health", "/api"})

_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.CREDENTIALS_NOT_VALIDATED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNKNOWN_PROVIDER: 404,
    ErrorCode.UNKNOWN_TOOL: 404,
    ErrorCode.JOB_NOT_FOUND: 404,
    ErrorCode.SESSION_NOT_FOUND: 404,
    ErrorCode.JOB_ALREADY_RUNNING: 409,
    ErrorCode.SESSION_ALREADY_ACTIVE: 409,
    ErrorCode.INVALID_STATE_TRANSITION: 409,
    ErrorCode.SCHEMA_VALIDATION_ERROR: 422,
    ErrorCode.MALFORMED_PAYLOAD: 422,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.EXECUTION_ERROR: 502,
    ErrorCode.WEBHOOK_DELIVERY_FAILED: 502,
    ErrorCode.PROVIDER_UNAVAILABLE: 503,
    ErrorCode.STORAGE_FAILED: 503,
    ErrorCode.EXECUTION_TIMEOUT: 504,
}


def error_code_to_status(code: ErrorCode) -> int:
    """Map error codes to HTTP status codes."""
    return _STATUS_BY_CODE.get(code, 500)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(error: ChatLedgerError, request_id: str) -> JSONResponse:
    """Serialize an error; rate limits also get a ``Retry-After`` header."""
    headers: dict[str, str] = {}
    if error.code == ErrorCode.RATE_LIMITED:
        retry_after = error.details.get("retry_after", 1)
        headers["Retry-After"] = str(max(1, math.ceil(retry_after)))
    return JSONResponse(
        status_code=error_code_to_status(error.code),
        content={"error": error.to_dict(), "request_id": request_id},
        headers=headers,
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with an ID and log its latency.

    Requests addressing a job or session also log that id, so a job's
    polling traffic can be followed without its credential.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        match = _WORK_PATH.match(request.url.path)
        work_id = match.group("work_id") if match else "-"

        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        logger.info(
            "%s %s -> %d in %.1fms work=%s request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            work_id,
            request_id,
        )
        return response


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Convert ChatLedgerError exceptions to structured JSON responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except ChatLedgerError as e:
            request_id = _request_id(request)
            status_code = error_code_to_status(e.code)
            log = logger.error if status_code >= 500 else logger.warning
            log("%s on %s: %s request_id=%s", e.code.value, request.url.path, e.message, request_id)
            return error_response(e, request_id)
        except Exception:
            request_id = _request_id(request)
            logger.exception("Unhandled error on %s request_id=%s", request.url.path, request_id)
            return JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "code": ErrorCode.INTERNAL_ERROR.value,
                        "message": "Internal server error",
                        "details": {},
                    },
                    "request_id": request_id,
                },
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Throttle each client address with a sliding window."""

    def __init__(
        self,
        app: ASGIApp,
        requests_per_minute: int = 60,
        limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter or SlidingWindowRateLimiter(
            limit=requests_per_minute,
            window_seconds=60.0,
            subject="requests",
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in _UNTHROTTLED:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        try:
            await self.limiter.acquire(client)
        except RateLimited as e:
            return error_response(e, _request_id(request))

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.remaining(client))
        return response
