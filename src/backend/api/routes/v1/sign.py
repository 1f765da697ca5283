"""
Presign endpoint (v1).

Turns ``{key, method, expires}`` into a presigned URL. Failures propagate as
``SigningError`` and are rendered by the global exception handlers.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Response

from api.dependencies import AppSettings, Credentials
from api.middleware.request_context import update_request_context
from models.schemas.sign import SignRequest, SignResponse
from signing import ALLOWED_METHODS, ConfigError, CryptoError, SigningError, SigningValidationError, presign
from utils.logger import logger
from utils.metrics import sign_duration_seconds, sign_requests_total

router = APIRouter()


def _outcome_for(exc: SigningError) -> str:
    if isinstance(exc, SigningValidationError):
        return "invalid"
    if isinstance(exc, ConfigError):
        return "config"
    if isinstance(exc, CryptoError):
        return "crypto"
    return "error"


@router.post(
    "/sign",
    response_model=SignResponse,
    summary="Presign",
    description="Issue a time-boxed presigned URL for one GET, PUT or DELETE on one object.",
    responses={
        200: {
            "description": "Presigned URL",
            "content": {
                "application/json": {
                    "example": {
                        "url": "https://abc123.r2.cloudflarestorage.com/bucket/a%20b.txt?X-Amz-Algorithm=...",
                    }
                }
            },
        },
        400: {"description": "Invalid method, missing key or bad expiry"},
        500: {"description": "Missing R2 configuration or signing failure"},
    },
)
async def sign(body: SignRequest, response: Response, credentials: Credentials, settings: AppSettings) -> SignResponse:
    """Presign one operation on one object."""
    expires = body.expires or settings.default_expires
    update_request_context(sign_method=body.method)

    # Label values must stay bounded; anything unexpected is bucketed
    method_label = body.method if body.method in ALLOWED_METHODS else "other"
    start = time.perf_counter()
    try:
        url = presign(body.method, body.key, expires, credentials)
    except SigningError as e:
        outcome = _outcome_for(e)
        sign_requests_total.labels(method=method_label, outcome=outcome).inc()
        logger.log_signing(body.method, body.key, expires, outcome)
        raise

    elapsed = time.perf_counter() - start
    sign_duration_seconds.observe(elapsed)
    sign_requests_total.labels(method=method_label, outcome="ok").inc()
    logger.log_signing(body.method, body.key, expires, "ok", duration_ms=elapsed * 1000)

    response.headers["Cache-Control"] = "no-store"
    return SignResponse(url=url)
