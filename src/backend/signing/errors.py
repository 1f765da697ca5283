"""
Signer exception taxonomy.

Every failure the signer can produce is a ``SigningError``. The HTTP layer maps
each subclass onto a status code; none of them ever carries key material.
"""

from __future__ import annotations


class SigningError(Exception):
    """Base class for presigning failures."""


class ConfigError(SigningError):
    """One or more required credentials are not configured.

    Attributes:
        missing: Configuration names that are absent, in declaration order.
    """

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing R2 configuration: {', '.join(self.missing)}")


class SigningValidationError(SigningError):
    """The request to sign is malformed (method, key or expiry)."""


class CryptoError(SigningError):
    """The hash/HMAC primitive failed. Never retried."""

    def __init__(self, message: str = "Failed to sign"):
        super().__init__(message)


__all__ = ["ConfigError", "CryptoError", "SigningError", "SigningValidationError"]
