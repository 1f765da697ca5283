"""
API v1 Router - Aggregates all v1 endpoints.

This module provides:
- Centralized v1 route registration
- Consistent prefix handling

Usage in main.py:
    from api.routes.v1 import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from api.routes.v1 import health, passcode, sign

# Create the v1 API router
router = APIRouter()

# Health endpoints (exempt from rate limiting)
router.include_router(
    health.router,
    tags=["Health"],
)

# Presigning
router.include_router(
    sign.router,
    tags=["Signing"],
)

# Shared passcode check
router.include_router(
    passcode.router,
    tags=["Passcode"],
)

__all__ = ["router"]
