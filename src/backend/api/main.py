from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.rate_limiter import RateLimitMiddleware, get_rate_limiter
from api.middleware.request_context import RequestContextMiddleware
from api.middleware.security_headers import SecurityHeadersMiddleware
from api.routes import metrics
from api.routes.v1 import router as v1_router
from core.constants import (
    CORS_ALLOW_HEADERS,
    CORS_ALLOW_METHODS,
    CORS_MAX_AGE,
    Settings,
    get_settings,
)
from signing.credentials import R2Credentials
from utils.logger import configure_uvicorn_logging, logger
from utils.metrics import config_complete

# Configure uvicorn logging at module level to ensure workers use it
configure_uvicorn_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: report configuration, run the rate limiter cleanup."""
    settings = get_settings()

    # Credentials may legitimately be absent at startup; say which, never their values
    missing = R2Credentials.from_settings(settings).missing()
    config_complete.set(0 if missing else 1)
    if missing:
        logger.warning(f"R2 configuration incomplete, signing will fail until set: {', '.join(missing)}")
    else:
        logger.info(f"R2 signer ready (region={settings.r2_region}, domain={settings.r2_store_domain})")

    # Start rate limiter cleanup task
    rate_limiter = get_rate_limiter()
    await rate_limiter.start()
    app.state.rate_limiter = rate_limiter

    try:
        yield
    finally:
        logger.info("Initiating graceful shutdown sequence")
        if hasattr(app.state, "rate_limiter") and app.state.rate_limiter:
            await app.state.rate_limiter.stop()
            logger.info("Rate limiter shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application."""
    settings = settings or get_settings()

    if settings.debug:
        from core.constants import _get_env_files

        logger.info(f"Env files: {[f.name for f in _get_env_files()]}")
        logger.info(f"Settings: app_env={settings.app_env}, cors={settings.cors_origins_list}")

    app = FastAPI(
        title="R2 Signer API",
        description="""
## R2 Signer API

Issues AWS Signature Version 4 presigned URLs for an S3-compatible object
store (Cloudflare R2). Browsers upload, download and delete objects directly
against the store; the secret key never leaves this service.

### Endpoints
- **Signing**: `POST /api/v1/sign` returns a URL for one GET, PUT or DELETE
- **Health**: configuration report, readiness and liveness probes
- **Passcode**: shared passcode check for the pastebin front end

### Versioning
API uses URL path versioning: `/api/v1/...`
""",
        version=settings.app_version,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Health",
                "description": "Health check endpoints for monitoring and orchestration",
            },
            {
                "name": "Signing",
                "description": "Presigned URL issuance",
            },
            {
                "name": "Passcode",
                "description": "Shared passcode verification",
            },
        ],
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )

    # Register global exception handlers for consistent error responses
    register_exception_handlers(app)

    # Middleware stack (executed in reverse order of registration)
    # Last added = first executed
    # 1. CORS (preflights answered before anything else)
    # 2. Request context (request ID for every later log line and error body)
    # 3. Security headers (added to every response, 429s included)
    # 4. Rate limiter
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        max_age=CORS_MAX_AGE,
    )

    # Routes - API v1
    app.include_router(v1_router, prefix="/api/v1")

    # Prometheus scrape endpoint (not versioned)
    app.include_router(metrics.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.is_development,
        reload_dirs=["src"],
        log_config=None,
    )
