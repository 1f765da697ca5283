"""
Presign request/response schemas.

The request model only normalizes JSON shapes. Method, key and expiry range
checks live in the signer so every hosting adapter rejects the same inputs.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignRequest(BaseModel):
    """Request for a presigned URL."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "key": "docs/report.pdf",
                "method": "GET",
                "expires": 300,
            }
        }
    )

    key: str = Field(..., description="Object key; '/' separates path segments")
    method: str = Field(default="PUT", description="GET, PUT or DELETE")
    expires: int | None = Field(
        default=None,
        description="URL lifetime in seconds; missing, null or 0 uses the server default",
    )

    @field_validator("expires", mode="before")
    @classmethod
    def normalize_expires(cls, v: Any) -> int | None:
        """Accept integers, integral floats and digit strings; falsy means default."""
        if v is None or v == "" or (not isinstance(v, bool) and v == 0):
            return None
        if isinstance(v, bool):
            raise ValueError("expires must be a number of seconds")
        if isinstance(v, int):
            return v
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, str):
            stripped = v.strip()
            if stripped.lstrip("-").isdigit():
                return int(stripped) or None
        raise ValueError("expires must be a number of seconds")


class SignResponse(BaseModel):
    """Presigned URL for exactly one operation on one object."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "url": (
                    "https://abc123.r2.cloudflarestorage.com/bucket/docs/report.pdf"
                    "?X-Amz-Algorithm=AWS4-HMAC-SHA256&...&X-Amz-Signature=..."
                ),
            }
        }
    )

    url: str = Field(..., description="Presigned URL, usable directly against the object store")
