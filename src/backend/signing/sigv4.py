"""
AWS Signature Version 4 query-string presigning for S3-compatible stores.

Produces presigned URLs for R2 (or any S3-compatible endpoint) without exposing
the secret key: the caller receives a URL whose query string carries the
credential scope, the expiry and the signature, and nothing else.

Two encoders are used and must never be swapped:

- ``encode_query_component``: strict RFC 3986, encodes ``/``
- ``encode_path``: same rules but leaves ``/`` literal (object keys are paths)

The module is pure: no I/O, no logging, no shared state. The clock is read at
most once per ``presign`` call.
"""

from __future__ import annotations

import hashlib
import hmac

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import cast
from urllib.parse import quote

from signing.credentials import R2Credentials
from signing.errors import CryptoError, SigningValidationError

ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
SCOPE_TERMINATOR = "aws4_request"
SIGNED_HEADERS = "host"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

#: Methods a presigned URL may authorize.
ALLOWED_METHODS: frozenset[str] = frozenset({"GET", "PUT", "DELETE"})

#: Default URL lifetime in seconds.
DEFAULT_EXPIRES = 300

#: SigV4 query signing caps X-Amz-Expires at seven days.
MAX_EXPIRES = 7 * 24 * 60 * 60

#: Filename used in Content-Disposition when the key ends with "/".
DEFAULT_FILENAME = "download"

SIGNATURE_PARAM = "X-Amz-Signature"

QueryParams = Sequence[tuple[str, str]]


# ============================================================================
# Encoding
# ============================================================================


def encode_query_component(value: str) -> str:
    """Percent-encode a query name or value under strict RFC 3986.

    Only ``A-Z a-z 0-9 - _ . ~`` pass through. Everything else, including
    ``/``, space and ``! ' ( ) *``, becomes ``%XX`` over the UTF-8 bytes.
    """
    return quote(value, safe="")


def encode_path(value: str) -> str:
    """Percent-encode an object key for the canonical URI, keeping ``/`` literal."""
    return quote(value, safe="/")


def canonical_query_string(params: Iterable[tuple[str, str]]) -> str:
    """Encode, sort and join query parameters.

    Pairs are sorted by encoded name, then encoded value, which for the
    ASCII parameter names used here is plain byte order.
    """
    encoded = sorted((encode_query_component(name), encode_query_component(value)) for name, value in params)
    return "&".join(f"{name}={value}" for name, value in encoded)


# ============================================================================
# Date and scope
# ============================================================================


def to_utc(now: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are taken to be UTC already."""
    if now.tzinfo is None:
        return now.replace(tzinfo=UTC)
    return now.astimezone(UTC)


def format_amz_date(now: datetime) -> str:
    """Format as compact ISO 8601 basic form, e.g. ``20240101T120000Z``."""
    return to_utc(now).strftime(AMZ_DATE_FORMAT)


def credential_scope(datestamp: str, region: str, service: str = SERVICE) -> str:
    return f"{datestamp}/{region}/{service}/{SCOPE_TERMINATOR}"


def content_disposition_for(key: str) -> str:
    """Force browsers to download the object under its own basename."""
    basename = key.split("/")[-1] or DEFAULT_FILENAME
    return f'attachment; filename="{basename}"'


# ============================================================================
# Canonical request and signature
# ============================================================================


def _sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def build_canonical_request(
    method: str,
    canonical_uri: str,
    canonical_query: str,
    host: str,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    """Assemble the canonical request. Only ``host`` is signed."""
    canonical_headers = f"host:{host}\n"
    return "\n".join(
        [
            method,
            canonical_uri,
            canonical_query,
            canonical_headers,
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def build_string_to_sign(amz_date: str, scope: str, canonical_request: str) -> str:
    return "\n".join([ALGORITHM, amz_date, scope, _sha256_hex(canonical_request)])


def derive_signing_key(secret_access_key: str, datestamp: str, region: str, service: str = SERVICE) -> bytes:
    """Derive the day/region/service scoped signing key.

    Each HMAC step is keyed by the raw digest of the previous one, so the
    result cannot be inverted to recover the secret.
    """
    k_date = _hmac_sha256(f"AWS4{secret_access_key}".encode(), datestamp)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, SCOPE_TERMINATOR)


def sign_string(signing_key: bytes, string_to_sign: str) -> str:
    """Lowercase hex HMAC-SHA256 of the string to sign."""
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def auth_query_params(access_key_id: str, scope: str, amz_date: str, expires: int) -> list[tuple[str, str]]:
    """The X-Amz-* parameters every presigned URL carries (signature excluded)."""
    return [
        ("X-Amz-Algorithm", ALGORITHM),
        ("X-Amz-Credential", f"{access_key_id}/{scope}"),
        ("X-Amz-Date", amz_date),
        ("X-Amz-Expires", str(expires)),
        ("X-Amz-SignedHeaders", SIGNED_HEADERS),
    ]


def build_presigned_url(
    *,
    method: str,
    host: str,
    canonical_uri: str,
    access_key_id: str,
    secret_access_key: str,
    region: str,
    expires: int,
    now: datetime,
    extra_params: QueryParams = (),
) -> str:
    """Sign ``method canonical_uri`` on ``host`` and return the full URL.

    This is the protocol-level routine; it does no validation. ``presign``
    is the entry point callers should use.

    Raises:
        CryptoError: If the hash or HMAC primitive fails.
    """
    amz_date = format_amz_date(now)
    datestamp = amz_date[:8]
    scope = credential_scope(datestamp, region)

    params = auth_query_params(access_key_id, scope, amz_date, expires)
    params.extend(extra_params)
    canonical_query = canonical_query_string(params)

    try:
        canonical_request = build_canonical_request(method, canonical_uri, canonical_query, host)
        string_to_sign = build_string_to_sign(amz_date, scope, canonical_request)
        signing_key = derive_signing_key(secret_access_key, datestamp, region)
        signature = sign_string(signing_key, string_to_sign)
    except (ValueError, TypeError, OSError) as e:
        raise CryptoError() from e

    return f"https://{host}{canonical_uri}?{canonical_query}&{SIGNATURE_PARAM}={signature}"


# ============================================================================
# Entry point
# ============================================================================


def validate_method(method: object) -> str:
    if not isinstance(method, str) or method not in ALLOWED_METHODS:
        raise SigningValidationError(f"Invalid method: expected one of {', '.join(sorted(ALLOWED_METHODS))}")
    return method


def validate_key(key: object) -> str:
    if not isinstance(key, str) or not key:
        raise SigningValidationError("Missing object key")
    try:
        key.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SigningValidationError("Object key is not valid UTF-8") from e
    return key


def validate_expires(expires: object) -> int:
    # bool is an int subclass; True must not mean "one second"
    if isinstance(expires, bool) or not isinstance(expires, int):
        raise SigningValidationError("Expires must be an integer number of seconds")
    if not 1 <= expires <= MAX_EXPIRES:
        raise SigningValidationError(f"Expires must be between 1 and {MAX_EXPIRES} seconds")
    return expires


def presign(
    method: str,
    key: str,
    expires: int,
    credentials: R2Credentials,
    now: datetime | None = None,
) -> str:
    """Produce a presigned URL for one operation on one object.

    Args:
        method: GET, PUT or DELETE
        key: Object key; ``/`` separated segments are kept as path segments
        expires: URL lifetime in seconds
        credentials: Bucket credentials, checked before any cryptography
        now: Signing instant; defaults to the current UTC time

    Returns:
        ``https://<account>.<domain>/<bucket>/<key>?...&X-Amz-Signature=...``

    Raises:
        SigningValidationError: Bad method, key or expiry
        ConfigError: A required credential is absent
        CryptoError: The hash/HMAC primitive failed
    """
    method = validate_method(method)
    key = validate_key(key)
    credentials.require()
    expires = validate_expires(expires)

    instant = to_utc(now) if now is not None else datetime.now(UTC)

    extra_params: list[tuple[str, str]] = []
    if method == "GET":
        extra_params.append(("response-content-disposition", content_disposition_for(key)))

    return build_presigned_url(
        method=method,
        host=credentials.host,
        canonical_uri=f"/{credentials.bucket}/{encode_path(key)}",
        access_key_id=cast(str, credentials.access_key_id),
        secret_access_key=cast(str, credentials.secret_access_key),
        region=credentials.region,
        expires=expires,
        now=instant,
        extra_params=extra_params,
    )


__all__ = [
    "ALGORITHM",
    "ALLOWED_METHODS",
    "AMZ_DATE_FORMAT",
    "DEFAULT_EXPIRES",
    "DEFAULT_FILENAME",
    "MAX_EXPIRES",
    "SCOPE_TERMINATOR",
    "SERVICE",
    "SIGNATURE_PARAM",
    "SIGNED_HEADERS",
    "UNSIGNED_PAYLOAD",
    "auth_query_params",
    "build_canonical_request",
    "build_presigned_url",
    "build_string_to_sign",
    "canonical_query_string",
    "content_disposition_for",
    "credential_scope",
    "derive_signing_key",
    "encode_path",
    "encode_query_component",
    "format_amz_date",
    "presign",
    "sign_string",
    "to_utc",
    "validate_expires",
    "validate_key",
    "validate_method",
]
