"""
Health check endpoints (v1).

Provides a diagnostic health report plus readiness and liveness probes.
The report shows which R2 settings are present, never their secret values.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.dependencies import AppSettings, Credentials
from models.schemas.health import (
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)
from signing.sigv4 import format_amz_date
from utils.metrics import config_complete

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Non-secret configuration report; compare amz_date with a client clock to spot skew.",
    responses={
        200: {
            "description": "Configuration report",
            "content": {
                "application/json": {
                    "example": {
                        "ok": True,
                        "now": "2024-01-01T12:00:00+00:00",
                        "amz_date": "20240101T120000Z",
                        "account_id": "abc123…",
                        "bucket": "pastebin-files",
                        "region": "auto",
                        "configured": True,
                        "missing": [],
                    }
                }
            },
        }
    },
    tags=["Health"],
)
async def health_check(credentials: Credentials, settings: AppSettings) -> HealthResponse:
    """Configuration report endpoint."""
    now = datetime.now(UTC)
    missing = credentials.missing()
    config_complete.set(0 if missing else 1)

    return HealthResponse(
        ok=True,
        now=now.isoformat(),
        amz_date=format_amz_date(now),
        account_id=credentials.masked_account_id,
        bucket=credentials.bucket,
        region=credentials.region,
        configured=not missing,
        missing=missing,
        version=settings.app_version,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Ready once every required R2 setting is present.",
    responses={
        200: {
            "description": "Service ready",
            "content": {"application/json": {"example": {"ready": True}}},
        },
        503: {
            "description": "Service not ready",
            "content": {
                "application/json": {
                    "example": {"ready": False, "error": "Missing R2 configuration: R2_SECRET_ACCESS_KEY"}
                }
            },
        },
    },
    tags=["Health"],
)
async def readiness_check(credentials: Credentials) -> ReadinessResponse | JSONResponse:
    """Kubernetes-style readiness probe."""
    missing = credentials.missing()
    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "error": f"Missing R2 configuration: {', '.join(missing)}"},
        )
    return ReadinessResponse(ready=True)


@router.get(
    "/health/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description="Kubernetes-style liveness probe to confirm process is running.",
    responses={
        200: {
            "description": "Process alive",
            "content": {"application/json": {"example": {"alive": True}}},
        }
    },
    tags=["Health"],
)
async def liveness_check() -> LivenessResponse:
    """Kubernetes-style liveness probe."""
    return LivenessResponse(alive=True)
