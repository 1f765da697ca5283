"""
Global exception handlers for the R2 signer API.

Provides centralized error handling with consistent response formatting,
proper logging, and request context integration. Signer exceptions are
mapped onto status codes here so routes can let them propagate.
"""

from __future__ import annotations

import traceback

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from api.middleware.request_context import get_request_context, get_request_id
from core.constants import ERROR_INVALID_REQUEST, ERROR_SIGNING_FAILED, get_settings
from models.error_models import (
    ErrorCode,
    ErrorDetail,
    ErrorResponse,
    get_status_code,
)
from signing.errors import ConfigError, CryptoError, SigningError, SigningValidationError
from utils.logger import logger


class AppException(Exception):
    """Base application exception with error code support.

    Use this for request-level errors that should return a specific
    error code and message to the client.

    Example:
        raise AppException(
            code=ErrorCode.AUTH_NOT_CONFIGURED,
            message="No passcodes configured on server",
        )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
        extra: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.cause = cause
        # Top-level keys merged into the error body (e.g. {"valid": False})
        self.extra = extra or {}
        super().__init__(message)


def _create_error_response(
    code: ErrorCode,
    message: str,
    request: Request | None = None,
    details: list[ErrorDetail] | None = None,
    debug_info: dict[str, Any] | None = None,
) -> ErrorResponse:
    """Create a standardized error response.

    Args:
        code: Application error code
        message: Human-readable error message
        request: FastAPI request object for path extraction
        details: List of detailed error information
        debug_info: Debug information (only included in development)
    """
    request_id = get_request_id()
    path = request.url.path if request else None

    return ErrorResponse(
        code=code,
        message=message,
        request_id=request_id,
        path=path,
        details=details,
        debug=debug_info,
    )


def _log_error(
    error: Exception,
    code: ErrorCode,
    status_code: int,
) -> None:
    """Log error with appropriate level and context."""
    ctx = get_request_context()
    log_context = ctx.to_log_context() if ctx else {}
    log_context["error_code"] = code.value
    log_context["status_code"] = status_code

    # Log at appropriate level based on status code
    if status_code >= 500:
        logger.error(
            f"Server error: {code.value} - {error}",
            exc_info=True,
            **log_context,
        )
    elif status_code >= 400:
        logger.warning(
            f"Client error: {code.value} - {error}",
            **log_context,
        )


def _json_error(
    status_code: int,
    error_response: ErrorResponse,
    include_debug: bool = False,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={**(extra or {}), **error_response.to_dict(include_debug=include_debug)},
        headers={"Cache-Control": "no-store"},
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle application-specific exceptions."""
    status_code = get_status_code(exc.code)

    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {
            "exception_type": type(exc).__name__,
            "cause": str(exc.cause) if exc.cause else None,
        }

    # Convert details dict to ErrorDetail list if needed
    details = None
    if exc.details:
        if "errors" in exc.details:
            details = [ErrorDetail(**e) for e in exc.details["errors"]]
        else:
            details = [ErrorDetail(message=str(v), field=k) for k, v in exc.details.items()]

    error_response = _create_error_response(
        code=exc.code,
        message=exc.message,
        request=request,
        details=details,
        debug_info=debug_info,
    )

    _log_error(exc, exc.code, status_code)

    return _json_error(status_code, error_response, include_debug=settings.debug, extra=exc.extra)


async def signing_exception_handler(request: Request, exc: SigningError) -> JSONResponse:
    """Map signer failures onto the error envelope.

    ConfigError names the missing settings (never their values). CryptoError
    always answers with the same generic message.
    """
    details: list[ErrorDetail] | None = None
    if isinstance(exc, ConfigError):
        code = ErrorCode.CONFIG_MISSING
        message = str(exc)
        details = [ErrorDetail(field="missing", message=name) for name in exc.missing]
    elif isinstance(exc, SigningValidationError):
        code = ErrorCode.VALIDATION_ERROR
        message = str(exc) or ERROR_INVALID_REQUEST
    elif isinstance(exc, CryptoError):
        code = ErrorCode.CRYPTO_FAILURE
        message = ERROR_SIGNING_FAILED
    else:
        code = ErrorCode.INTERNAL_ERROR
        message = ERROR_SIGNING_FAILED

    status_code = get_status_code(code)

    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {"exception_type": type(exc).__name__}

    error_response = _create_error_response(
        code=code,
        message=message,
        request=request,
        details=details,
        debug_info=debug_info,
    )

    _log_error(exc, code, status_code)

    return _json_error(status_code, error_response, include_debug=settings.debug)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with consistent formatting."""
    # Map HTTP status codes to error codes
    status_to_code = {
        400: ErrorCode.VALIDATION_ERROR,
        403: ErrorCode.AUTH_NOT_CONFIGURED,
        404: ErrorCode.RESOURCE_NOT_FOUND,
        405: ErrorCode.METHOD_NOT_ALLOWED,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.RATE_LIMITED,
        500: ErrorCode.INTERNAL_ERROR,
    }

    code = status_to_code.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    settings = get_settings()
    debug_info = None
    if settings.debug:
        debug_info = {"original_status": exc.status_code}

    error_response = _create_error_response(
        code=code,
        message=message,
        request=request,
        debug_info=debug_info,
    )

    _log_error(exc, code, exc.status_code)

    response = _json_error(exc.status_code, error_response, include_debug=settings.debug)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def _validation_details(errors: Any) -> list[ErrorDetail]:
    details = []
    for error in errors:
        field_path = ".".join(str(loc) for loc in error["loc"])
        details.append(
            ErrorDetail(
                field=field_path,
                message=error["msg"],
                code=error["type"],
            )
        )
    return details


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors from request parsing.

    Malformed bodies are client errors and answer 400, not FastAPI's 422.
    """
    error_response = _create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message=ERROR_INVALID_REQUEST,
        request=request,
        details=_validation_details(exc.errors()),
    )

    _log_error(exc, ErrorCode.VALIDATION_ERROR, 400)

    return _json_error(400, error_response)


async def pydantic_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic ValidationError from model validation."""
    error_response = _create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message=ERROR_INVALID_REQUEST,
        request=request,
        details=_validation_details(exc.errors()),
    )

    _log_error(exc, ErrorCode.VALIDATION_ERROR, 400)

    return _json_error(400, error_response)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions with graceful degradation."""
    settings = get_settings()

    # Log full traceback for debugging
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True,
        request_id=get_request_id(),
        path=request.url.path,
    )

    debug_info = None
    if settings.debug:
        debug_info = {
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        }

    error_response = _create_error_response(
        code=ErrorCode.INTERNAL_UNEXPECTED,
        message="An unexpected error occurred",
        request=request,
        debug_info=debug_info,
    )

    return _json_error(500, error_response, include_debug=settings.debug)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Call this in main.py after creating the FastAPI app:
        register_exception_handlers(app)
    """
    # Application-specific exceptions
    # Note: type: ignore needed because Starlette's type signature expects Exception,
    # but covariant exception types in handlers are safe and work correctly at runtime
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SigningError, signing_exception_handler)  # type: ignore[arg-type]

    # FastAPI/Starlette exceptions
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    # Pydantic exceptions
    app.add_exception_handler(ValidationError, pydantic_exception_handler)  # type: ignore[arg-type]

    # Catch-all for unexpected exceptions
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "AppException",
    "app_exception_handler",
    "generic_exception_handler",
    "http_exception_handler",
    "pydantic_exception_handler",
    "register_exception_handlers",
    "signing_exception_handler",
    "validation_exception_handler",
]
