"""
Constants and configuration for the R2 signer.
Centralizes magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

import os
import threading

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
)

from signing.credentials import DEFAULT_REGION, DEFAULT_STORE_DOMAIN
from signing.sigv4 import DEFAULT_EXPIRES, MAX_EXPIRES

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
#: When a log file reaches this size, it's rotated to .log.1, .log.2, etc.
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of error log backups to retain during rotation.
#: Maintains the last 3 error log files (~30MB total).
LOG_BACKUP_COUNT_ERRORS = 3

#: Length of the per-process logger instance id (hex characters).
INSTANCE_ID_LENGTH = 8

# ============================================================================
# HTTP Surface
# ============================================================================

#: Methods browsers may use against this service and, via CORS, the signed URLs.
CORS_ALLOW_METHODS = ["GET", "PUT", "DELETE", "POST", "OPTIONS"]

#: Request headers accepted on cross-origin calls.
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "x-requested-with"]

#: Preflight cache lifetime (seconds).
CORS_MAX_AGE = 3600

# ============================================================================
# Error Messages
# ============================================================================

#: Returned for malformed sign requests (bad method, missing key).
ERROR_INVALID_REQUEST = "Invalid request"

#: Returned when HMAC/SHA-256 fails. Never carries the underlying exception.
ERROR_SIGNING_FAILED = "Failed to sign"

#: Returned by /verify-passcode when no passcode is configured.
ERROR_NO_PASSCODES = "No passcodes configured on server"

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================

#: Valid environment names for configuration loading
Environment = Literal["development", "production", "test"]

#: Backend source directory for .env file resolution
_BACKEND_DIR = Path(__file__).parent.parent


def _get_env_files() -> list[Path]:
    """Determine which .env files to load based on APP_ENV.

    Load order (later files override earlier - pydantic-settings last-wins):
    1. .env (base defaults) - lowest priority
    2. .env.{environment} (environment-specific overrides)
    3. .env.local (local developer overrides, gitignored) - highest priority

    Returns:
        List of Path objects for env files that exist.
    """
    env_name = os.getenv("APP_ENV", "development").lower()
    if env_name not in ("development", "production", "test"):
        env_name = "development"

    candidates = [
        _BACKEND_DIR / ".env",
        _BACKEND_DIR / f".env.{env_name}",
        _BACKEND_DIR / ".env.local",
    ]
    return [p for p in candidates if p.exists()]


def _reload_dotenv_into_environ() -> None:
    """Reload our dotenv files into os.environ so .env.{APP_ENV} wins.

    Must be called BEFORE Settings() instantiation.
    """
    from dotenv import load_dotenv

    for env_file in _get_env_files():
        load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    """Environment settings with validation and environment-specific file support.

    Configuration priority (highest to lowest):
    1. Values passed to Settings() constructor
    2. Environment variables (standard Docker/K8s behavior)
    3. .env.local > .env.{APP_ENV} > .env (dotenv files, last wins)

    R2 credentials are optional here: a service without them still starts and
    reports which names are missing on every sign request and on /health.
    """

    # Environment identification
    app_env: Environment = Field(default="development", description="Application environment")

    # Debug and logging
    debug: bool = Field(default=False, description="Enable debug logging and debug error payloads")

    # R2 / S3-compatible object store
    r2_account_id: str | None = Field(default=None, description="Cloudflare account id (host prefix)")
    r2_bucket_name: str | None = Field(default=None, description="Bucket that presigned URLs address")
    r2_access_key_id: str | None = Field(default=None, description="Access key id embedded in X-Amz-Credential")
    r2_secret_access_key: SecretStr | None = Field(default=None, description="Secret key, never leaves the server")
    r2_region: str = Field(default=DEFAULT_REGION, description="Region placed in the credential scope")
    r2_store_domain: str = Field(default=DEFAULT_STORE_DOMAIN, description="Object store host suffix")
    default_expires: int = Field(default=DEFAULT_EXPIRES, description="URL lifetime when the client omits one")

    # Shared passcode check
    dev_passcode: SecretStr | None = Field(default=None, description="Primary shared passcode")
    dev_passcode_2: SecretStr | None = Field(default=None, description="Secondary shared passcode")

    # API server
    api_port: int = Field(default=8000, description="FastAPI port")
    api_host: str = Field(default="0.0.0.0", description="FastAPI host")
    app_version: str = Field(default="1.0.0", description="Application version")

    # CORS
    cors_allow_origins: str = Field(default="*", description="Comma-separated allowed origins, or *")

    # Rate limiting
    rate_limit_enabled: bool = Field(default=True, description="Enable per-IP rate limiting")
    sign_requests_per_minute: int = Field(default=60, description="Sign requests allowed per client per minute")
    passcode_requests_per_minute: int = Field(default=10, description="Passcode checks allowed per client per minute")

    # Hot-reload support (development only)
    config_hot_reload: bool = Field(
        default=False,
        description="Enable configuration hot-reloading (development only, has performance cost)",
    )

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings source priority for environment-specific config.

        Priority (highest to lowest):
        1. init_settings - Values passed to Settings() constructor
        2. env_settings - Environment variables
        3. dotenv files - .env.local > .env.{APP_ENV} > .env (last-wins in list)
        """
        dotenv_source = DotEnvSettingsSource(
            settings_cls,
            env_file=_get_env_files(),
            env_file_encoding="utf-8",
        )
        return (init_settings, env_settings, dotenv_source)

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | None) -> str:
        """Validate and normalize APP_ENV value."""
        if v is None:
            return "development"
        normalized = str(v).lower()
        if normalized not in ("development", "production", "test"):
            raise ValueError(f"app_env must be 'development', 'production', or 'test', got '{v}'")
        return normalized

    @field_validator("r2_region", "r2_store_domain")
    @classmethod
    def strip_host_parts(cls, v: str) -> str:
        """Region and domain go into the host and scope verbatim; no stray whitespace or dots."""
        return v.strip().strip(".")

    @field_validator("default_expires")
    @classmethod
    def validate_default_expires(cls, v: int) -> int:
        if not 1 <= v <= MAX_EXPIRES:
            raise ValueError(f"default_expires must be between 1 and {MAX_EXPIRES} seconds")
        return v

    @field_validator("sign_requests_per_minute", "passcode_requests_per_minute")
    @classmethod
    def validate_rate(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate limits must allow at least one request per minute")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Allowed origins as a list for CORSMiddleware."""
        if self.cors_allow_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    @property
    def passcodes(self) -> list[str]:
        """Configured shared passcodes, blanks dropped."""
        values = [p.get_secret_value() for p in (self.dev_passcode, self.dev_passcode_2) if p is not None]
        return [v for v in values if v]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.app_env == "test"


# ============================================================================
# Settings Management (Thread-safe with Hot-Reload Support)
# ============================================================================


class _SettingsManager:
    """Thread-safe settings manager with optional hot-reload support.

    Uses a class to avoid global statement warnings from linters.
    """

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def get(self) -> Settings:
        """Get settings instance with optional hot-reload support.

        Returns:
            Validated Settings instance.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self._instance is not None and not self._instance.config_hot_reload:
            return self._instance

        with self._lock:
            # Double-check after acquiring lock
            if self._instance is not None and not self._instance.config_hot_reload:
                return self._instance

            _reload_dotenv_into_environ()
            self._instance = Settings()
            return self._instance

    def reload(self) -> Settings:
        """Force reload settings from environment files."""
        with self._lock:
            _reload_dotenv_into_environ()
            self._instance = Settings()
            return self._instance

    def clear(self) -> None:
        """Clear cached settings instance.

        Primarily useful for testing to ensure fresh settings on each test.
        """
        with self._lock:
            self._instance = None


# Module-level singleton manager
_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """Get settings instance with optional hot-reload support.

    This is the primary entry point for accessing application settings.
    Settings are validated on first use and cached for performance.

    In development with CONFIG_HOT_RELOAD=true, settings are reloaded
    on each call to pick up .env file changes (and rotated R2 keys) without restart.
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Force reload settings from environment files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    """Clear cached settings instance."""
    _settings_manager.clear()
