"""
Shared passcode check (v1).

The browser asks whether a passcode matches one of the configured ones. This
service gates nothing on the answer; the pastebin front end does.
"""

from __future__ import annotations

import secrets

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.dependencies import AppSettings
from api.middleware.exception_handlers import AppException
from core.constants import ERROR_NO_PASSCODES
from models.error_models import ErrorCode
from models.schemas.passcode import PasscodeRequest, PasscodeResponse
from utils.logger import logger
from utils.metrics import passcode_checks_total

router = APIRouter()


def passcode_matches(candidate: str, passcodes: list[str]) -> bool:
    """Constant-time comparison against every configured passcode."""
    encoded = candidate.encode("utf-8")
    matched = False
    for passcode in passcodes:
        # No short-circuit: every configured passcode is compared
        matched |= secrets.compare_digest(encoded, passcode.encode("utf-8"))
    return matched


@router.post(
    "/verify-passcode",
    response_model=PasscodeResponse,
    summary="Verify passcode",
    description="Check a shared passcode against DEV_PASSCODE and DEV_PASSCODE_2.",
    responses={
        200: {
            "description": "Passcode matches",
            "content": {"application/json": {"example": {"valid": True}}},
        },
        401: {
            "description": "Passcode does not match",
            "content": {"application/json": {"example": {"valid": False}}},
        },
        403: {
            "description": "No passcode configured",
            "content": {"application/json": {"example": {"valid": False, "error": ERROR_NO_PASSCODES}}},
        },
    },
)
async def verify_passcode(body: PasscodeRequest, settings: AppSettings) -> PasscodeResponse | JSONResponse:
    """Verify a shared passcode."""
    passcodes = settings.passcodes
    if not passcodes:
        passcode_checks_total.labels(result="unconfigured").inc()
        raise AppException(
            code=ErrorCode.AUTH_NOT_CONFIGURED,
            message=ERROR_NO_PASSCODES,
            extra={"valid": False},
        )

    valid = passcode_matches(body.passcode, passcodes)
    passcode_checks_total.labels(result="valid" if valid else "invalid").inc()
    if not valid:
        logger.info("Passcode check failed")
        return JSONResponse(status_code=401, content={"valid": False})
    return PasscodeResponse(valid=True)
