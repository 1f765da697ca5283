"""
Presigned URL verification.

Recomputes the signature of a captured URL from its own query parameters, the
way the object store does. Used to prove the forward algorithm is
deterministic and order-sensitive, and handy when debugging 403s from R2.
"""

from __future__ import annotations

import hmac

from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qsl, urlsplit

from signing.credentials import R2Credentials
from signing.errors import SigningValidationError
from signing.sigv4 import (
    ALGORITHM,
    AMZ_DATE_FORMAT,
    SCOPE_TERMINATOR,
    SIGNATURE_PARAM,
    SIGNED_HEADERS,
    build_canonical_request,
    build_string_to_sign,
    canonical_query_string,
    derive_signing_key,
    sign_string,
    to_utc,
    validate_expires,
    validate_method,
)

REQUIRED_PARAMS = (
    "X-Amz-Algorithm",
    "X-Amz-Credential",
    "X-Amz-Date",
    "X-Amz-Expires",
    "X-Amz-SignedHeaders",
    SIGNATURE_PARAM,
)


def _parse_query(query: str) -> tuple[list[tuple[str, str]], dict[str, str]]:
    try:
        pairs = parse_qsl(query, keep_blank_values=True, strict_parsing=True)
    except ValueError as e:
        raise SigningValidationError("Malformed query string") from e

    lookup: dict[str, str] = {}
    for name, value in pairs:
        if name in lookup:
            raise SigningValidationError(f"Duplicate query parameter: {name}")
        lookup[name] = value

    missing = [name for name in REQUIRED_PARAMS if name not in lookup]
    if missing:
        raise SigningValidationError(f"Missing query parameters: {', '.join(missing)}")

    signed = [(name, value) for name, value in pairs if name != SIGNATURE_PARAM]
    return signed, lookup


def verify_presigned_url(
    url: str,
    credentials: R2Credentials,
    method: str,
    now: datetime | None = None,
) -> bool:
    """Check that ``url`` authorizes ``method`` at ``now`` under ``credentials``.

    Returns:
        True if the signature matches and the URL has not expired.

    Raises:
        SigningValidationError: If the URL is not a well-formed presigned URL
        ConfigError: If the credentials are incomplete
    """
    method = validate_method(method)
    credentials.require()

    parts = urlsplit(url)
    if parts.scheme != "https" or not parts.netloc or not parts.path:
        raise SigningValidationError("Not an https URL with a path")

    signed_params, lookup = _parse_query(parts.query)

    if lookup["X-Amz-Algorithm"] != ALGORITHM:
        raise SigningValidationError(f"Unsupported algorithm: {lookup['X-Amz-Algorithm']}")
    if lookup["X-Amz-SignedHeaders"] != SIGNED_HEADERS:
        return False

    try:
        signed_at = datetime.strptime(lookup["X-Amz-Date"], AMZ_DATE_FORMAT).replace(tzinfo=UTC)
        expires = int(lookup["X-Amz-Expires"])
    except ValueError as e:
        raise SigningValidationError("Malformed X-Amz-Date or X-Amz-Expires") from e
    validate_expires(expires)

    access_key_id, _, scope = lookup["X-Amz-Credential"].partition("/")
    scope_parts = scope.split("/")
    if len(scope_parts) != 4 or scope_parts[3] != SCOPE_TERMINATOR:
        raise SigningValidationError("Malformed credential scope")
    datestamp, region, service, _ = scope_parts

    if access_key_id != credentials.access_key_id or datestamp != lookup["X-Amz-Date"][:8]:
        return False

    instant = to_utc(now) if now is not None else datetime.now(UTC)
    if not signed_at <= instant <= signed_at + timedelta(seconds=expires):
        return False

    canonical_request = build_canonical_request(
        method,
        parts.path,
        canonical_query_string(signed_params),
        parts.netloc,
    )
    string_to_sign = build_string_to_sign(lookup["X-Amz-Date"], scope, canonical_request)
    signing_key = derive_signing_key(str(credentials.secret_access_key), datestamp, region, service)
    expected = sign_string(signing_key, string_to_sign)

    return hmac.compare_digest(expected.encode(), lookup[SIGNATURE_PARAM].encode("utf-8"))


__all__ = ["REQUIRED_PARAMS", "verify_presigned_url"]
