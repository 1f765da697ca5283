"""
R2 Signer - AWS Signature Version 4 presigned URLs for Cloudflare R2
=====================================================================

FastAPI service that lets browsers talk to an S3-compatible object store
directly. The secret key stays on the server; clients get a URL that allows
exactly one method on one object until it expires.

Key Features:
    - **Presigning**: GET, PUT and DELETE query-string SigV4 URLs (UNSIGNED-PAYLOAD)
    - **Verification**: Recompute and check a presigned URL against the same credentials
    - **Diagnostics**: Masked configuration report plus readiness/liveness probes
    - **Enterprise Logging**: Structured JSON logs with signature and key redaction

Modules:
    api: FastAPI routes, middleware, dependency injection
    core: Settings and configuration constants
    signing: Canonical request, signing key derivation, URL assembly, verification
    models: Pydantic request/response and error envelope models
    utils: Logging and Prometheus metrics

Architecture:
    ``signing`` is pure: it takes credentials and a clock and returns a URL or
    raises. The HTTP service (``api.main``) and the CLI (``scripts/sign_url.py``)
    are thin adapters that map its errors onto status codes and exit codes.
"""
