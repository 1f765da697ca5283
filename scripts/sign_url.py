#!/usr/bin/env python3
"""
Presign an R2 object URL from the command line.

Usage:
    python scripts/sign_url.py KEY [--method PUT] [--expires 300]
    python scripts/sign_url.py --verify URL [--method GET]

Credentials come from the same settings the API uses (.env files and
R2_* environment variables). Exit status: 0 on success, 1 on missing
configuration or a URL that fails verification, 2 on invalid input.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add src/backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src" / "backend"))

from core.constants import get_settings  # noqa: E402
from signing import (  # noqa: E402
    ALLOWED_METHODS,
    R2Credentials,
    SigningError,
    SigningValidationError,
    presign,
    verify_presigned_url,
)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_INVALID = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Issue (or check) an AWS SigV4 presigned URL for an R2 object",
    )
    parser.add_argument("key", nargs="?", help="Object key, e.g. docs/report.pdf")
    parser.add_argument(
        "--method",
        default=None,
        type=str.upper,
        help=f"One of {', '.join(sorted(ALLOWED_METHODS))} (default: PUT, or GET with --verify)",
    )
    parser.add_argument(
        "--expires",
        type=int,
        default=None,
        help="URL lifetime in seconds (default: DEFAULT_EXPIRES setting, 300)",
    )
    parser.add_argument(
        "--verify",
        metavar="URL",
        default=None,
        help="Check that URL is a valid, unexpired presigned URL for --method",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.key and not args.verify:
        parser.error("either KEY or --verify URL is required")

    settings = get_settings()
    credentials = R2Credentials.from_settings(settings)

    try:
        if args.verify:
            valid = verify_presigned_url(args.verify, credentials, args.method or "GET")
            print("valid" if valid else "invalid")
            return EXIT_OK if valid else EXIT_CONFIG

        expires = args.expires if args.expires is not None else settings.default_expires
        print(presign(args.method or "PUT", args.key, expires, credentials))
        return EXIT_OK
    except SigningValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_INVALID
    except SigningError as e:
        # ConfigError, or CryptoError with its generic message
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_CONFIG


if __name__ == "__main__":
    sys.exit(main())
