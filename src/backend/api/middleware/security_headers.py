"""Security headers middleware.

Every response gets a fixed set of browser hardening headers. Responses under
``/api/`` are additionally marked uncacheable, since a presigned URL in a
cached body is as good as the credential it was signed with. HSTS is sent in
production only.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from core.constants import get_settings

# Default HSTS max-age: 1 year in seconds
DEFAULT_HSTS_MAX_AGE = 31536000

# Responses under this prefix must never be cached by browsers or proxies
NO_STORE_PREFIX = "/api/"

#: Headers set on every response. The API never serves HTML.
STATIC_SECURITY_HEADERS: Mapping[str, str] = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Deprecated filter; "0" turns it off in browsers that still ship it
    "X-XSS-Protection": "0",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses.

    Args:
        app: ASGI application
        hsts_max_age: HSTS max-age in seconds (default 1 year)
        enable_hsts: Force HSTS on or off; None follows ``settings.is_production``
    """

    def __init__(
        self,
        app: Callable[..., Any],
        hsts_max_age: int = DEFAULT_HSTS_MAX_AGE,
        enable_hsts: bool | None = None,
    ) -> None:
        super().__init__(app)
        if enable_hsts is None:
            enable_hsts = get_settings().is_production
        self._hsts = f"max-age={hsts_max_age}" if enable_hsts else None

    @property
    def hsts_enabled(self) -> bool:
        return self._hsts is not None

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        response.headers.update(STATIC_SECURITY_HEADERS)
        if self._hsts:
            response.headers["Strict-Transport-Security"] = self._hsts

        # Routes may set a stricter or explicit policy themselves
        if request.url.path.startswith(NO_STORE_PREFIX):
            response.headers.setdefault("Cache-Control", "no-store")

        return response


__all__ = ["DEFAULT_HSTS_MAX_AGE", "STATIC_SECURITY_HEADERS", "SecurityHeadersMiddleware"]
