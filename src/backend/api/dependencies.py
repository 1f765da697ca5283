from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from core.constants import Settings, get_settings
from signing.credentials import R2Credentials


def get_app_settings() -> Settings:
    """Provide application settings via dependency injection.

    This is the recommended way to access settings in route handlers.
    Settings are validated on first use and cached for performance.

    In development with CONFIG_HOT_RELOAD=true, settings are reloaded
    on each request to pick up .env file changes without restart.

    Usage in routes:
        @router.get("/example")
        async def example(settings: AppSettings):
            return {"debug": settings.debug}
    """
    return get_settings()


def get_credentials(settings: Annotated[Settings, Depends(get_app_settings)]) -> R2Credentials:
    """Build signing credentials for this request.

    Incomplete credentials are returned as-is; the signer reports what is
    missing when it is asked to sign.
    """
    return R2Credentials.from_settings(settings)


# Type aliases for cleaner route signatures
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Credentials = Annotated[R2Credentials, Depends(get_credentials)]
