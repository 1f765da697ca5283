"""
Prometheus metrics configuration for the R2 signer.

Defines custom metrics and instrumentation logic. Label values are drawn
from small fixed sets; object keys and client addresses are never labels.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest

# Use standard Prometheus naming conventions: namespace_subsystem_name_unit
NAMESPACE = "r2signer"

# ============================================================================
# Request Metrics
# ============================================================================

request_duration_seconds = Histogram(
    f"{NAMESPACE}_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path", "status"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.5),
)


# ============================================================================
# Signing Metrics
# ============================================================================

sign_requests_total = Counter(
    f"{NAMESPACE}_sign_requests_total",
    "Total presign requests by HTTP method of the signed URL and outcome",
    ["method", "outcome"],  # outcome: "ok", "invalid", "config", "crypto"
)

sign_duration_seconds = Histogram(
    f"{NAMESPACE}_sign_duration_seconds",
    "Time spent computing a presigned URL",
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05),
)

config_complete = Gauge(
    f"{NAMESPACE}_config_complete",
    "1 if every required R2 setting is present, else 0",
)


# ============================================================================
# Access Control Metrics
# ============================================================================

passcode_checks_total = Counter(
    f"{NAMESPACE}_passcode_checks_total",
    "Shared passcode verifications by result",
    ["result"],  # "valid", "invalid", "unconfigured"
)

rate_limited_total = Counter(
    f"{NAMESPACE}_rate_limited_total",
    "Requests rejected by the rate limiter",
    ["tier"],
)


def render_latest() -> tuple[bytes, str]:
    """Serialize the default registry for a /metrics scrape."""
    return generate_latest(), CONTENT_TYPE_LATEST
