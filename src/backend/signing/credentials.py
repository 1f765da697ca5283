"""
Credential struct handed to the signer on every call.

Credentials are built per request from settings and passed explicitly; the
signer never reads the environment itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from signing.errors import ConfigError

if TYPE_CHECKING:
    from core.constants import Settings

#: Default R2 region. R2 ignores the region but SigV4 requires one in the scope.
DEFAULT_REGION = "auto"

#: Host suffix for R2's S3-compatible endpoint.
DEFAULT_STORE_DOMAIN = "r2.cloudflarestorage.com"

#: Number of account id characters shown by diagnostics.
MASKED_ACCOUNT_PREFIX = 6

#: Required field -> configuration name reported when it is absent.
#: Order matters: ConfigError lists missing names in this order.
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("account_id", "R2_ACCOUNT_ID"),
    ("bucket", "R2_BUCKET_NAME"),
    ("access_key_id", "R2_ACCESS_KEY_ID"),
    ("secret_access_key", "R2_SECRET_ACCESS_KEY"),
)


@dataclass(frozen=True, slots=True)
class R2Credentials:
    """Everything needed to sign for one bucket.

    Attributes:
        account_id: Cloudflare account id, the first label of the store host
        bucket: Bucket name, the first segment of the canonical URI
        access_key_id: Public half of the key pair, embedded in X-Amz-Credential
        secret_access_key: Secret half, only ever fed into the HMAC chain
        region: Region placed in the credential scope
        store_domain: Host suffix of the object store
    """

    account_id: str | None
    bucket: str | None
    access_key_id: str | None
    secret_access_key: str | None = field(default=None, repr=False)
    region: str = DEFAULT_REGION
    store_domain: str = DEFAULT_STORE_DOMAIN

    @classmethod
    def from_settings(cls, settings: Settings) -> R2Credentials:
        """Build credentials from application settings."""
        secret = settings.r2_secret_access_key
        return cls(
            account_id=settings.r2_account_id or None,
            bucket=settings.r2_bucket_name or None,
            access_key_id=settings.r2_access_key_id or None,
            secret_access_key=secret.get_secret_value() if secret is not None else None,
            region=settings.r2_region or DEFAULT_REGION,
            store_domain=settings.r2_store_domain or DEFAULT_STORE_DOMAIN,
        )

    def missing(self) -> list[str]:
        """Return configuration names of absent required fields."""
        return [name for attr, name in REQUIRED_FIELDS if not getattr(self, attr)]

    def require(self) -> None:
        """Raise ConfigError if any required field is absent."""
        missing = self.missing()
        if missing:
            raise ConfigError(missing)

    @property
    def is_complete(self) -> bool:
        return not self.missing()

    @property
    def host(self) -> str:
        """Object store host, also the only signed header."""
        return f"{self.account_id}.{self.store_domain}"

    @property
    def masked_account_id(self) -> str | None:
        """Account id prefix safe to show in diagnostics."""
        if not self.account_id:
            return None
        return f"{self.account_id[:MASKED_ACCOUNT_PREFIX]}…"


__all__ = [
    "DEFAULT_REGION",
    "DEFAULT_STORE_DOMAIN",
    "REQUIRED_FIELDS",
    "R2Credentials",
]
