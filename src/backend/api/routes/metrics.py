"""
Prometheus scrape endpoint (unversioned, like the probes it sits beside).
"""

from __future__ import annotations

from fastapi import APIRouter, Response

from utils.metrics import render_latest

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose the default Prometheus registry."""
    payload, content_type = render_latest()
    return Response(content=payload, media_type=content_type)
