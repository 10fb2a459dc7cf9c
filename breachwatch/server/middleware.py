"""
HTTP middleware for the BreachWatch server.

This module provides middleware components for request ids, error
handling, rate limiting, and request logging.
"""

import asyncio
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from aiohttp import web

from breachwatch.exceptions import (
    BreachWatchError,
    IncidentNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from breachwatch.models.base import generate_uuid

# Type alias for aiohttp middleware handler
Handler = Callable[["web.Request"], Awaitable["web.StreamResponse"]]
Middleware = Callable[["web.Request", Handler], Awaitable["web.StreamResponse"]]


logger = logging.getLogger("breachwatch.server")

# Checked in order, so subclasses come before their bases.
EXCEPTION_STATUS_MAP: tuple[tuple[type[BreachWatchError], int], ...] = (
    (ValidationError, 400),
    (IncidentNotFoundError, 404),
    (InvalidTransitionError, 409),
    (BreachWatchError, 500),
)


def status_for_exception(error: BreachWatchError) -> int:
    """Return the HTTP status code for a BreachWatch exception."""
    for exc_type, status in EXCEPTION_STATUS_MAP:
        if isinstance(error, exc_type):
            return status
    return 500


def error_body(
    error_type: str,
    message: str,
    request_id: str,
    details: dict | None = None,
) -> dict:
    """Build the JSON body shared by every error response."""
    body = {"type": error_type, "message": message, "request_id": request_id}
    if details is not None:
        body["details"] = details
    return {"error": body}


def create_request_id_middleware() -> Middleware:
    """
    Create middleware that ensures every request has a unique ID.

    The request ID is taken from the X-Request-ID header if present,
    otherwise a new UUID is generated. It is echoed on the response.
    """
    from aiohttp import web

    @web.middleware
    async def request_id_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        request_id = request.headers.get("X-Request-ID") or generate_uuid()
        request["request_id"] = request_id

        try:
            response = await handler(request)
        except web.HTTPException as e:
            e.headers["X-Request-ID"] = request_id
            raise
        response.headers["X-Request-ID"] = request_id
        return response

    return request_id_middleware


def create_error_handler_middleware() -> Middleware:
    """
    Create error handling middleware.

    BreachWatch exceptions become JSON error responses: validation errors
    are 400, missing incidents 404, rejected transitions 409, and anything
    else 500. Unexpected exceptions are logged with their traceback and
    reported without internal details.
    """
    from aiohttp import web

    @web.middleware
    async def error_handler_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        request_id = request.get("request_id", "unknown")
        try:
            return await handler(request)

        except web.HTTPException:
            raise

        except BreachWatchError as e:
            status = status_for_exception(e)
            log = logger.error if status >= 500 else logger.info
            log(
                f"{request.method} {request.path} -> {status} "
                f"{e.__class__.__name__}: {e.message}",
                extra={"request_id": request_id},
            )
            return web.json_response(
                error_body(e.__class__.__name__, e.message, request_id, e.details),
                status=status,
            )

        except asyncio.CancelledError:
            raise

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {e}",
                extra={"request_id": request_id},
            )
            return web.json_response(
                error_body("InternalError", "An internal error occurred", request_id),
                status=500,
            )

    return error_handler_middleware


@dataclass
class RateLimitEntry:
    """Rate limit tracking entry."""

    count: int = 0
    window_start: float = field(default_factory=time.monotonic)


class RateLimiter:
    """
    In-memory fixed-window rate limiter keyed by client address.

    Attributes:
        max_requests: Maximum requests per window.
        window_seconds: Duration of the rate limit window.
    """

    def __init__(self, max_requests: int = 1000, window_seconds: int = 60) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._entries: dict[str, RateLimitEntry] = defaultdict(RateLimitEntry)
        self._lock = asyncio.Lock()

    async def check(self, client_key: str) -> tuple[bool, int]:
        """
        Count a request against a client's window.

        Returns:
            Tuple of (is_allowed, remaining_requests).
        """
        now = time.monotonic()
        async with self._lock:
            entry = self._entries[client_key]
            if now - entry.window_start >= self.window_seconds:
                entry.count = 0
                entry.window_start = now

            if entry.count >= self.max_requests:
                return False, 0

            entry.count += 1
            return True, self.max_requests - entry.count

    async def cleanup(self) -> None:
        """Remove expired entries to free memory."""
        now = time.monotonic()
        async with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if now - entry.window_start >= self.window_seconds * 2
            ]
            for key in expired:
                del self._entries[key]


def create_rate_limit_middleware(
    max_requests: int = 1000,
    window_seconds: int = 60,
    exempt_paths: tuple[str, ...] = ("/v1/health", "/v1/ready"),
) -> tuple[Middleware, RateLimiter]:
    """
    Create rate limiting middleware.

    Returns both the middleware and the limiter so the application can
    clean the limiter up on shutdown.
    """
    from aiohttp import web

    limiter = RateLimiter(max_requests, window_seconds)

    @web.middleware
    async def rate_limit_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        if request.path in exempt_paths:
            return await handler(request)

        is_allowed, remaining = await limiter.check(f"ip:{request.remote or 'unknown'}")
        if not is_allowed:
            response = web.json_response(
                error_body(
                    "RateLimitExceeded",
                    f"Rate limit exceeded. Max {limiter.max_requests} requests "
                    f"per {limiter.window_seconds} seconds.",
                    request.get("request_id", "unknown"),
                ),
                status=429,
            )
            response.headers["Retry-After"] = str(limiter.window_seconds)
            response.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
            response.headers["X-RateLimit-Remaining"] = "0"
            return response

        response = await handler(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response

    return rate_limit_middleware, limiter


def create_request_logging_middleware(log_level: int = logging.INFO) -> Middleware:
    """
    Create request logging middleware.

    Logs method, path, status, and duration of each request.
    """
    from aiohttp import web

    @web.middleware
    async def request_logging_middleware(
        request: web.Request,
        handler: Handler,
    ) -> web.StreamResponse:
        request_id = request.get("request_id", "unknown")
        start = time.perf_counter()
        status = 500
        try:
            response = await handler(request)
            status = response.status
            return response
        except web.HTTPException as e:
            status = e.status
            raise
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.log(
                log_level,
                f"{request.method} {request.path} {status} "
                f"{duration_ms:.2f}ms [{request_id[:8]}]",
                extra={"request_id": request_id},
            )

    return request_logging_middleware
