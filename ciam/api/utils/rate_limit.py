"""
Request Rate Limiting

Fixed-window request counters per client IP and request path, kept in
process memory. Each limited route group has its own RateLimit
(login, mfa, refresh, sessions) read from ApplicationConfig.

Counters are not shared between worker processes; each process enforces
the limit on the traffic it sees.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from fastapi import Request, status

from ciam.api.error import ClientError
from ciam.domain.base import utcnow
from ciam.libs.result import Error

logger = logging.getLogger(__name__)

# Expired windows are pruned once this many keys are tracked
MAX_TRACKED_KEYS = 10000


@dataclass
class RateLimit:
    """Rate limit configuration"""

    limit: int  # Maximum requests per window
    window_seconds: int

    def __post_init__(self):
        if self.limit < 1 or self.window_seconds < 1:
            raise ValueError("Rate limit and window must be positive")


@dataclass
class RateLimitState:
    """Current window of one client key"""

    requests_made: int
    window_start: datetime
    reset_time: datetime
    limit: int

    @property
    def requests_remaining(self) -> int:
        return max(0, self.limit - self.requests_made)

    @property
    def is_exceeded(self) -> bool:
        return self.requests_made > self.limit

    def retry_after(self, now: datetime) -> int:
        """Whole seconds until the window resets, at least 1"""
        return max(1, math.ceil((self.reset_time - now).total_seconds()))


class FixedWindowRateLimiter:
    def __init__(
        self,
        limits: Dict[str, RateLimit],
        clock: Callable[[], datetime] = utcnow,
    ):
        self.limits = limits
        self.clock = clock
        self._windows: Dict[str, RateLimitState] = {}

    @classmethod
    def from_config(cls, config) -> "FixedWindowRateLimiter":
        return cls(
            {
                "login": RateLimit(
                    config.RATE_LIMIT_LOGIN_MAX, config.RATE_LIMIT_LOGIN_WINDOW_SECONDS
                ),
                "mfa": RateLimit(config.RATE_LIMIT_MFA_MAX, config.RATE_LIMIT_MFA_WINDOW_SECONDS),
                "refresh": RateLimit(
                    config.RATE_LIMIT_REFRESH_MAX, config.RATE_LIMIT_REFRESH_WINDOW_SECONDS
                ),
                "sessions": RateLimit(
                    config.RATE_LIMIT_SESSIONS_MAX, config.RATE_LIMIT_SESSIONS_WINDOW_SECONDS
                ),
            }
        )

    def increment_usage(self, scope: str, identifier: str) -> RateLimitState:
        """
        Count one request of identifier against the limit of scope.

        A window starts with the first request and resets once
        window_seconds have elapsed; there is no sliding carry-over.
        """
        rate_limit = self.limits[scope]
        now = self.clock()
        key = f"{scope}:{identifier}"

        state = self._windows.get(key)
        if state is None or now >= state.reset_time:
            if len(self._windows) >= MAX_TRACKED_KEYS:
                self._prune(now)
            state = RateLimitState(
                requests_made=0,
                window_start=now,
                reset_time=now + timedelta(seconds=rate_limit.window_seconds),
                limit=rate_limit.limit,
            )
            self._windows[key] = state

        state.requests_made += 1
        return state

    def reset_limit(self, scope: str, identifier: str) -> bool:
        return self._windows.pop(f"{scope}:{identifier}", None) is not None

    def _prune(self, now: datetime) -> None:
        expired = [key for key, state in self._windows.items() if now >= state.reset_time]
        for key in expired:
            del self._windows[key]


def _client_key(request: Request) -> str:
    host: Optional[str] = request.client.host if request.client else None
    return f"{host or 'unknown'}:{request.url.path}"


def rate_limited(scope: str):
    """
    Dependency factory enforcing the limit of scope per client IP and path.

    No-op unless create_app installed a limiter on app.state.

    Raises:
        ClientError: 429 RATE_LIMITED with a Retry-After header
    """

    async def check_rate_limit(request: Request):
        limiter: Optional[FixedWindowRateLimiter] = getattr(
            request.app.state, "rate_limiter", None
        )
        if limiter is None:
            return

        identifier = _client_key(request)
        state = limiter.increment_usage(scope, identifier)
        if not state.is_exceeded:
            return

        retry_after = state.retry_after(limiter.clock())
        logger.warning(
            "Rate limit exceeded: %s (%s, limit %d)", identifier, scope, state.limit
        )
        raise ClientError(
            Error(
                "RATE_LIMITED",
                "Too many requests, please try again later",
                {"retry_after": retry_after},
            ),
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(retry_after)},
        )

    return check_rate_limit
