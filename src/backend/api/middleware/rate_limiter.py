"""Per-client rate limiting for the signing and passcode routes.

Each limited route belongs to a tier. A tier admits ``requests_per_minute``
requests in a sliding 60 second window, plus a one-off burst that is restored
once the client's window has drained. Clients are keyed by IP. Routes outside
the tier table (health, metrics, docs) are never limited.
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from api.middleware.request_context import get_client_ip, get_request_id
from core.constants import Settings, get_settings
from models.error_models import ErrorCode, ErrorResponse
from utils.logger import logger
from utils.metrics import rate_limited_total

#: Sliding window length (seconds)
WINDOW_SIZE = 60.0

#: Windows idle this long are dropped by the cleanup task (seconds)
ENTRY_TTL = 120.0

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for one tier."""

    requests_per_minute: int
    burst_size: int = 0

    @property
    def ceiling(self) -> int:
        return self.requests_per_minute + self.burst_size


@dataclass
class ClientWindow:
    """Recent request times for one client in one tier, oldest first."""

    hits: deque[float] = field(default_factory=deque)
    burst_used: int = 0

    def prune(self, now: float) -> None:
        cutoff = now - WINDOW_SIZE
        while self.hits and self.hits[0] <= cutoff:
            self.hits.popleft()
        if not self.hits:
            self.burst_used = 0

    def idle_since(self, instant: float) -> bool:
        return not self.hits or self.hits[-1] < instant


# Defaults; build_rate_limit_tiers applies the per-minute limits from settings
RATE_LIMIT_TIERS: dict[str, RateLimitConfig] = {
    # A page load may presign several URLs at once
    "sign": RateLimitConfig(requests_per_minute=60, burst_size=10),
    # No burst: this is the endpoint a guesser would hammer
    "passcode": RateLimitConfig(requests_per_minute=10),
}

#: Path prefix -> tier. First match wins.
TIER_ROUTES: tuple[tuple[str, str], ...] = (
    ("/api/v1/sign", "sign"),
    ("/api/v1/verify-passcode", "passcode"),
)


def build_rate_limit_tiers(settings: Settings) -> dict[str, RateLimitConfig]:
    """Tier table with the settings-driven limits applied."""
    return {
        "sign": RateLimitConfig(
            requests_per_minute=settings.sign_requests_per_minute,
            burst_size=RATE_LIMIT_TIERS["sign"].burst_size,
        ),
        "passcode": RateLimitConfig(requests_per_minute=settings.passcode_requests_per_minute),
    }


def tier_for_path(path: str) -> str | None:
    """Tier that limits ``path``, or None when the path is not limited."""
    for prefix, tier in TIER_ROUTES:
        if path.startswith(prefix):
            return tier
    return None


def client_key(request: Request) -> str:
    return f"ip:{get_client_ip(request) or 'unknown'}"


class SlidingWindowRateLimiter:
    """In-memory sliding window limiter keyed by (tier, client).

    Args:
        cleanup_interval: Seconds between sweeps of idle windows
        tiers: Tier table; defaults to RATE_LIMIT_TIERS
    """

    def __init__(
        self,
        cleanup_interval: float = 60.0,
        tiers: dict[str, RateLimitConfig] | None = None,
    ) -> None:
        self.tiers = dict(tiers or RATE_LIMIT_TIERS)
        self._windows: dict[tuple[str, str], ClientWindow] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = cleanup_interval
        self._cleanup_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Start the background sweep."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info("Rate limiter cleanup task started")

    async def stop(self) -> None:
        """Cancel the background sweep and wait for it to finish."""
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._cleanup_task
        self._cleanup_task = None
        logger.info("Rate limiter cleanup task stopped")

    async def is_allowed(self, identifier: str, tier: str) -> tuple[bool, dict[str, int]]:
        """Record a request if the client still has room in ``tier``.

        Returns:
            Tuple of (allowed, headers) where headers are the
            X-RateLimit-* values to put on the response.

        Raises:
            KeyError: If ``tier`` is not in the tier table
        """
        config = self.tiers[tier]
        now = time.monotonic()

        async with self._lock:
            window = self._windows.setdefault((tier, identifier), ClientWindow())
            window.prune(now)

            allowance = config.ceiling - window.burst_used
            if len(window.hits) >= allowance:
                return False, self._headers(config, len(window.hits))

            window.hits.append(now)
            overflow = min(len(window.hits) - config.requests_per_minute, config.burst_size)
            window.burst_used = max(window.burst_used, overflow)
            return True, self._headers(config, len(window.hits))

    @staticmethod
    def _headers(config: RateLimitConfig, used: int) -> dict[str, int]:
        return {
            "X-RateLimit-Limit": config.ceiling,
            "X-RateLimit-Remaining": max(0, config.ceiling - used),
            "X-RateLimit-Reset": int(WINDOW_SIZE),
        }

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            await self._cleanup_expired()

    async def _cleanup_expired(self) -> None:
        """Drop windows with no request in the last ENTRY_TTL seconds."""
        cutoff = time.monotonic() - ENTRY_TTL
        async with self._lock:
            idle = [key for key, window in self._windows.items() if window.idle_since(cutoff)]
            for key in idle:
                del self._windows[key]
        if idle:
            logger.debug(f"Rate limiter cleanup: removed {len(idle)} idle windows")


_rate_limiter: SlidingWindowRateLimiter | None = None


def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get or create the process-wide limiter with tiers from settings."""
    global _rate_limiter  # noqa: PLW0603
    if _rate_limiter is None:
        _rate_limiter = SlidingWindowRateLimiter(tiers=build_rate_limit_tiers(get_settings()))
    return _rate_limiter


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject over-limit requests to tiered routes with a 429 error envelope."""

    def __init__(
        self,
        app: Callable[..., Any],
        rate_limiter: SlidingWindowRateLimiter | None = None,
    ) -> None:
        super().__init__(app)
        self._rate_limiter = rate_limiter

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        if self._rate_limiter is None:
            self._rate_limiter = get_rate_limiter()
        return self._rate_limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        tier = tier_for_path(path)

        # Preflights are answered by the CORS middleware
        if tier is None or request.method == "OPTIONS" or not get_settings().rate_limit_enabled:
            return await call_next(request)

        identifier = client_key(request)
        allowed, headers = await self.rate_limiter.is_allowed(identifier, tier)
        rendered = {name: str(value) for name, value in headers.items()}

        if not allowed:
            logger.warning(f"Rate limit exceeded for {identifier} on {tier} tier (path: {path})")
            rate_limited_total.labels(tier=tier).inc()
            retry_after = headers["X-RateLimit-Reset"]
            content = ErrorResponse(
                code=ErrorCode.RATE_LIMITED,
                message=RATE_LIMIT_MESSAGE,
                request_id=get_request_id(),
                path=path,
            ).to_dict()
            content["retry_after"] = retry_after
            return JSONResponse(
                status_code=429,
                content=content,
                headers={**rendered, "Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers.update(rendered)
        return response


__all__ = [
    "RATE_LIMIT_TIERS",
    "TIER_ROUTES",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "SlidingWindowRateLimiter",
    "build_rate_limit_tiers",
    "get_rate_limiter",
    "tier_for_path",
]
