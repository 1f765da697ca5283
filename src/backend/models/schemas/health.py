"""
Health check API schemas.

Provides response models for the diagnostic health report and the
readiness and liveness probes. None of them carry key material.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Non-secret configuration report."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": True,
                "now": "2024-01-01T12:00:00.000000+00:00",
                "amz_date": "20240101T120000Z",
                "account_id": "abc123…",
                "bucket": "pastebin-files",
                "region": "auto",
                "configured": True,
                "missing": [],
                "version": "1.0.0",
            }
        }
    )

    ok: bool = Field(default=True, description="Service is up")
    now: str = Field(..., description="Server time (ISO 8601, UTC)")
    amz_date: str = Field(..., description="Server time in X-Amz-Date form, for clock skew checks")
    account_id: str | None = Field(default=None, description="Masked account id prefix")
    bucket: str | None = Field(default=None, description="Configured bucket name")
    region: str = Field(..., description="Region used in the credential scope")
    configured: bool = Field(..., description="Every required R2 setting is present")
    missing: list[str] = Field(default_factory=list, description="Names of absent R2 settings")
    version: str | None = Field(default=None, description="Application version")


class ReadinessResponse(BaseModel):
    """Kubernetes-style readiness probe response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ready": True,
            }
        }
    )

    ready: bool = Field(
        ...,
        description="Service can sign requests",
        json_schema_extra={"example": True},
    )
    error: str | None = Field(
        default=None,
        description="Error message if not ready",
    )


class LivenessResponse(BaseModel):
    """Kubernetes-style liveness probe response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "alive": True,
            }
        }
    )

    alive: bool = Field(
        default=True,
        description="Process is running",
        json_schema_extra={"example": True},
    )
