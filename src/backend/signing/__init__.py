"""
SigV4 presigning for R2 and other S3-compatible object stores.

Pure, platform-independent signing core. The HTTP service in ``api`` and the
command-line script in ``scripts/`` are thin adapters over ``presign``.
"""

from signing.credentials import R2Credentials
from signing.errors import ConfigError, CryptoError, SigningError, SigningValidationError
from signing.sigv4 import ALLOWED_METHODS, DEFAULT_EXPIRES, MAX_EXPIRES, presign
from signing.verify import verify_presigned_url

__all__ = [
    "ALLOWED_METHODS",
    "DEFAULT_EXPIRES",
    "MAX_EXPIRES",
    "ConfigError",
    "CryptoError",
    "R2Credentials",
    "SigningError",
    "SigningValidationError",
    "presign",
    "verify_presigned_url",
]
