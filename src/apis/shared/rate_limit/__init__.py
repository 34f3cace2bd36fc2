"""Per-client rate limiting for API endpoints."""

from .store import (
    create_rate_limit_storage,
    get_rate_limit_storage,
)
from .limiter import (
    RateLimiter,
    RateLimitResult,
    get_client_identifier,
    upload_rate_limiter,
    confirm_rate_limiter,
    delete_rate_limiter,
)
from .dependencies import (
    RateLimitedRoute,
    check_rate_limit,
    rate_limited,
    apply_rate_limit_headers,
)

__all__ = [
    "create_rate_limit_storage",
    "get_rate_limit_storage",
    "RateLimiter",
    "RateLimitResult",
    "get_client_identifier",
    "upload_rate_limiter",
    "confirm_rate_limiter",
    "delete_rate_limiter",
    "RateLimitedRoute",
    "check_rate_limit",
    "rate_limited",
    "apply_rate_limit_headers",
]
