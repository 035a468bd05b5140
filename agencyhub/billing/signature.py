"""Lemon Squeezy webhook signature verification.

Lemon Squeezy sends a hex-encoded HMAC-SHA256 of the raw request body in
the X-Signature header. The body must be the exact bytes received:
re-serializing parsed JSON changes the digest.

Security contract:
- Comparison is constant-time (hmac.compare_digest)
- Any internal failure counts as a failed verification, never an exception
"""

from __future__ import annotations

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def _as_bytes(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def compute_signature(body: str | bytes, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of ``body`` keyed with ``secret``."""
    return hmac.new(_as_bytes(secret), _as_bytes(body), hashlib.sha256).hexdigest()


def verify_signature(signature: str | None, body: str | bytes, secret: str) -> bool:
    """Verify a Lemon Squeezy webhook signature.

    Args:
        signature: Value of the X-Signature header
        body: Raw request body
        secret: Webhook signing secret

    Returns:
        True if the signature matches the body under ``secret``
    """
    if not signature:
        return False
    try:
        expected = compute_signature(body, secret)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii"))
    except (TypeError, ValueError, AttributeError):
        logger.warning("Signature verification error", exc_info=True)
        return False
