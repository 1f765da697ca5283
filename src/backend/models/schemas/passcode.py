"""
Shared passcode check schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PasscodeRequest(BaseModel):
    """Passcode submitted by the browser."""

    passcode: str = Field(default="", description="Passcode to check")


class PasscodeResponse(BaseModel):
    """Result of a passcode check."""

    valid: bool = Field(..., description="Passcode matches one of the configured passcodes")
