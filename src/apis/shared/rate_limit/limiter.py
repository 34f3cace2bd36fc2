"""Fixed-window rate limiter keyed by client identity and operation."""

import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from limits import RateLimitItemPerSecond
from limits.storage import Storage
from limits.strategies import FixedWindowRateLimiter
from starlette.requests import Request

from .store import get_rate_limit_storage

UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of counting one request."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # Unix epoch seconds when the window ends
    retry_after: int  # Seconds until the window ends

    def headers(self) -> Dict[str, str]:
        """Observability headers sent with every guarded response."""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_at)),
        }


def get_client_identifier(request: Request) -> str:
    """Return the first X-Forwarded-For address, or 'unknown'."""
    forwarded_for = request.headers.get("x-forwarded-for", "")
    if forwarded_for:
        first_ip = forwarded_for.split(",", 1)[0].strip()
        if first_ip:
            return first_ip
    return UNKNOWN_CLIENT


class RateLimiter:
    """
    Counts requests per (operation, identity) in fixed windows.

    The window starts at the first hit and is not extended by later hits.
    Every call counts against the limit, including rejected ones.
    Storage errors propagate to the caller, which decides the failure policy.
    """

    def __init__(
        self,
        operation: str,
        max_requests: int,
        window_seconds: int = 60,
        storage: Optional[Storage] = None,
        key_func: Callable[[Request], str] = get_client_identifier,
    ):
        self.operation = operation
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self.key_func = key_func
        self._storage = storage
        self._strategy: Optional[FixedWindowRateLimiter] = None

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = get_rate_limit_storage()
        return self._storage

    @property
    def strategy(self) -> FixedWindowRateLimiter:
        if self._strategy is None:
            self._strategy = FixedWindowRateLimiter(self.storage)
        return self._strategy

    def use_storage(self, storage: Storage) -> None:
        """Swap the counter storage (resets the strategy bound to it)."""
        self._storage = storage
        self._strategy = None

    def identify(self, request: Request) -> str:
        return self.key_func(request)

    def allow(self, identity: str) -> RateLimitResult:
        """
        Count a request for an identity.

        Args:
            identity: Client identity (e.g. IP address)

        Returns:
            RateLimitResult; allowed is False once the count exceeds max_requests
        """
        allowed = self.strategy.hit(self.item, self.operation, identity)
        stats = self.strategy.get_window_stats(self.item, self.operation, identity)

        return RateLimitResult(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(0, stats.remaining),
            reset_at=stats.reset_time,
            retry_after=max(0, math.ceil(stats.reset_time - time.time())),
        )


# Per-operation limiters for the upload lifecycle endpoints
upload_rate_limiter = RateLimiter("upload", max_requests=10, window_seconds=60)
confirm_rate_limiter = RateLimiter("confirm", max_requests=15, window_seconds=60)
delete_rate_limiter = RateLimiter("delete", max_requests=20, window_seconds=60)
