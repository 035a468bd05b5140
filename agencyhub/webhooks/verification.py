"""WorkOS webhook signatures: timestamped HMAC-SHA256 scheme.

WorkOS sends a WorkOS-Signature header of the form::

    t=<unix seconds>,v1=<hex hmac>

where the HMAC is computed over ``"<t>.<raw body>"``.

Security contract:
- Both ``t`` and ``v1`` must be present, otherwise verification fails
  before any HMAC work
- Comparison is constant-time (hmac.compare_digest)
- verify_webhook_signature() never raises
- Replay protection is a separate check (is_timestamp_fresh) so callers
  decide the tolerance
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Unix seconds stay below this until the year 33658
_MILLISECOND_THRESHOLD = 10**12


@dataclass(frozen=True)
class WebhookSignatureHeader:
    """Parsed WorkOS-Signature header."""

    timestamp: str
    signature: str

    def __str__(self) -> str:
        return f"t={self.timestamp},v1={self.signature}"


def _as_bytes(payload: str | bytes) -> bytes:
    if isinstance(payload, bytes):
        return payload
    return payload.encode("utf-8")


def _signed_digest(secret: str, timestamp: str, payload: str | bytes) -> str:
    """Hex HMAC-SHA256 over ``b"<timestamp>." + payload``, on the raw bytes."""
    signed_payload = f"{timestamp}.".encode("utf-8") + _as_bytes(payload)
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def parse_signature_header(header: str | None) -> WebhookSignatureHeader | None:
    """Parse ``t=...,v1=...`` into its parts.

    Returns None when the header is empty or either field is missing.
    """
    if not header:
        return None

    parts: dict[str, str] = {}
    for item in header.split(","):
        kv = item.strip().split("=", 1)
        if len(kv) == 2:
            key, value = kv
            # First occurrence wins
            parts.setdefault(key.strip(), value.strip())

    timestamp = parts.get("t")
    signature = parts.get("v1")
    if not timestamp or not signature:
        return None
    return WebhookSignatureHeader(timestamp=timestamp, signature=signature)


def sign_webhook(payload: str | bytes, secret: str, timestamp_seconds: int | None = None) -> str:
    """Produce a valid WorkOS-Signature header for ``payload``.

    Used to build test fixtures and for ops tooling; not part of the
    inbound path.
    """
    if timestamp_seconds is None:
        timestamp_seconds = int(time.time())
    digest = _signed_digest(secret, str(timestamp_seconds), payload)
    return str(WebhookSignatureHeader(timestamp=str(timestamp_seconds), signature=digest))


def verify_webhook_signature(payload: str | bytes, header: str | None, secret: str) -> bool:
    """Verify a WorkOS webhook signature.

    Args:
        payload: Raw request body
        header: Value of the WorkOS-Signature header
        secret: Webhook signing secret

    Returns:
        True if the v1 digest matches ``"<t>.<payload>"`` under ``secret``.
        The timestamp is not checked against the clock here.
    """
    parsed = parse_signature_header(header)
    if parsed is None:
        return False

    try:
        expected = _signed_digest(secret, parsed.timestamp, payload)
        return hmac.compare_digest(expected.encode("ascii"), parsed.signature.encode("ascii"))
    except (TypeError, ValueError, AttributeError):
        logger.warning("Signature verification error", exc_info=True)
        return False


def is_timestamp_fresh(header: str | None, tolerance_seconds: int, now: float | None = None) -> bool:
    """Check that the signed timestamp is within ``tolerance_seconds`` of now.

    Timestamps in the future are held to the same window. A ``t`` in
    milliseconds (13 digits) is read as such.
    """
    parsed = parse_signature_header(header)
    if parsed is None:
        return False
    try:
        timestamp = int(parsed.timestamp)
    except ValueError:
        return False
    if timestamp >= _MILLISECOND_THRESHOLD:
        timestamp //= 1000
    if now is None:
        now = time.time()
    if abs(now - timestamp) > tolerance_seconds:
        logger.warning("WorkOS webhook timestamp outside tolerance: %s", timestamp)
        return False
    return True
