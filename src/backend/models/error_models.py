"""
Standardized error response models for the R2 signer API.

Every failure returns the same flat envelope. ``error`` is always a short,
human-readable string (browser clients read ``j.error`` directly); the other
keys are for tracing and never contain key material.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Application-specific error codes for categorization."""

    # Authentication errors (1xxx)
    AUTH_NOT_CONFIGURED = "AUTH_1001"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VAL_2001"

    # Resource errors (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"
    METHOD_NOT_ALLOWED = "RES_3002"

    # Signing errors (4xxx)
    CONFIG_MISSING = "SIG_4001"
    CRYPTO_FAILURE = "SIG_4002"

    # Throttling (7xxx)
    RATE_LIMITED = "EXT_7003"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_UNEXPECTED = "INT_9999"


class ErrorDetail(BaseModel):
    """Detailed information about a specific validation or sub-error."""

    field: str | None = None
    message: str
    code: str | None = None
    value: Any | None = Field(default=None, exclude=True)  # Excluded from response for security


class ErrorResponse(BaseModel):
    """Standardized error response model for REST endpoints.

    Example response:
    {
        "error": "Missing R2 configuration: R2_ACCOUNT_ID",
        "code": "SIG_4001",
        "request_id": "req_abc123",
        "timestamp": "2025-01-15T10:30:00Z",
        "path": "/api/v1/sign",
        "details": [{"field": "missing", "message": "R2_ACCOUNT_ID"}]
    }
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    details: list[ErrorDetail] | None = None
    path: str | None = None
    # Debug info - only included in development mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        """Convert to dictionary for JSON response.

        Args:
            include_debug: Include debug information (only in development)
        """
        data = self.model_dump(mode="json", exclude_none=True, exclude={"message"})
        body: dict[str, Any] = {"error": self.message, **data}
        if include_debug and self.debug:
            body["debug"] = self.debug
        return body


# HTTP status code mappings for error codes
ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    # 400 Bad Request
    ErrorCode.VALIDATION_ERROR: 400,
    # 403 Forbidden
    ErrorCode.AUTH_NOT_CONFIGURED: 403,
    # 404 Not Found
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    # 405 Method Not Allowed
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    # 429 Too Many Requests
    ErrorCode.RATE_LIMITED: 429,
    # 500 Internal Server Error
    ErrorCode.CONFIG_MISSING: 500,
    ErrorCode.CRYPTO_FAILURE: 500,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.INTERNAL_UNEXPECTED: 500,
}


def get_status_code(error_code: ErrorCode) -> int:
    """Get HTTP status code for an error code."""
    return ERROR_CODE_TO_STATUS.get(error_code, 500)


__all__ = [
    "ERROR_CODE_TO_STATUS",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "get_status_code",
]
