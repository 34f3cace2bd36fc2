"""FastAPI integration for the rate limiter."""

import logging
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.routing import APIRoute

from apis.shared.errors import ApiError, ErrorKind

from .limiter import RateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


def check_rate_limit(limiter: RateLimiter, request: Request) -> Optional[RateLimitResult]:
    """
    Count the request against a limiter.

    The result is kept on ``request.state.rate_limit`` so responses and error
    handlers can carry the same headers.

    If the counter storage fails the request proceeds without headers (fail-open).

    Raises:
        ApiError: RATE_LIMITED when the limit is exceeded
    """
    try:
        identity = limiter.identify(request)
        result = limiter.allow(identity)
    except Exception as e:
        logger.error(
            f"Rate limit storage error for '{limiter.operation}', allowing request: {e}",
            exc_info=True,
        )
        return None

    request.state.rate_limit = result

    if not result.allowed:
        logger.warning(
            f"Rate limit exceeded for '{limiter.operation}' by {identity} "
            f"({limiter.max_requests} per {limiter.window_seconds}s)"
        )
        raise ApiError(
            ErrorKind.RATE_LIMITED,
            f"Rate limit exceeded. Please try again in {result.retry_after} seconds.",
            headers={"Retry-After": str(result.retry_after)},
        )
    return result


def rate_limited(limiter: RateLimiter) -> Callable:
    """
    Mark an endpoint as rate limited.

    Usage:
        router = APIRouter(route_class=RateLimitedRoute)

        @router.post("/upload")
        @rate_limited(upload_rate_limiter)
        async def request_upload(...): ...
    """
    def decorator(endpoint: Callable) -> Callable:
        endpoint.rate_limiter = limiter
        return endpoint

    return decorator


class RateLimitedRoute(APIRoute):
    """
    Route that counts requests before the body is parsed.

    Malformed or invalid bodies are counted too, and their error responses
    carry the rate-limit headers.
    """

    def get_route_handler(self) -> Callable:
        handler = super().get_route_handler()
        limiter: Optional[RateLimiter] = getattr(self.endpoint, "rate_limiter", None)
        if limiter is None:
            return handler

        async def rate_limited_handler(request: Request) -> Response:
            check_rate_limit(limiter, request)
            response = await handler(request)
            return apply_rate_limit_headers(request, response)

        return rate_limited_handler


def apply_rate_limit_headers(request: Request, response: Response) -> Response:
    """Copy rate-limit headers recorded for this request onto a response."""
    result: Optional[RateLimitResult] = getattr(request.state, "rate_limit", None)
    if result is not None:
        for name, value in result.headers().items():
            response.headers[name] = value
    return response
