"""Tests for webhook signature verification.

Tests:
- Lemon Squeezy X-Signature (plain hex HMAC-SHA256 of the raw body)
- WorkOS t=...,v1=... scheme: sign/verify round trip, tamper sensitivity
- Malformed headers fail closed without raising
- Replay window check (is_timestamp_fresh)
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time

from freezegun import freeze_time
from hypothesis import assume, given
from hypothesis import strategies as st

from agencyhub.billing.signature import compute_signature, verify_signature
from agencyhub.webhooks.verification import (
    WebhookSignatureHeader,
    is_timestamp_fresh,
    parse_signature_header,
    sign_webhook,
    verify_webhook_signature,
)

SECRET = "test-secret"

_HEX = "0123456789abcdef"


def _flip(text: str, index: int, alphabet: str | None = None) -> str:
    """Replace the character at ``index`` with a different one."""
    original = text[index]
    for candidate in alphabet or "ab01xyz.":
        if candidate != original:
            return text[:index] + candidate + text[index + 1 :]
    raise AssertionError("no replacement found")


# ── Lemon Squeezy ─────────────────────────────────────────────────────────


class TestLemonSqueezySignature:
    """Plain hex HMAC-SHA256 over the raw body."""

    def test_valid_signature(self):
        body = '{"meta": {"event_name": "subscription_created"}}'
        sig = hmac.new(SECRET.encode(), body.encode(), hashlib.sha256).hexdigest()
        assert verify_signature(sig, body, SECRET) is True

    def test_accepts_bytes_body(self):
        body = b'{"id": 1}'
        assert verify_signature(compute_signature(body, SECRET), body, SECRET) is True

    def test_reserialized_json_fails(self):
        body = '{"a": 1,   "b": 2}'
        sig = compute_signature(body, SECRET)
        reserialized = json.dumps(json.loads(body))
        assert verify_signature(sig, reserialized, SECRET) is False

    def test_digest_is_lowercase_hex(self):
        sig = compute_signature("body", SECRET)
        assert len(sig) == 64
        assert set(sig) <= set(_HEX)

    def test_uppercase_digest_rejected(self):
        sig = compute_signature("body", SECRET)
        upper = sig.upper()
        if upper != sig:
            assert verify_signature(upper, "body", SECRET) is False

    def test_wrong_secret(self):
        sig = compute_signature("body", SECRET)
        assert verify_signature(sig, "body", "other-secret") is False

    def test_surrounding_whitespace_rejected(self):
        sig = compute_signature("body", SECRET)
        assert verify_signature(f" {sig}", "body", SECRET) is False
        assert verify_signature(f"{sig}\n", "body", SECRET) is False

    def test_missing_signature(self):
        assert verify_signature(None, "body", SECRET) is False
        assert verify_signature("", "body", SECRET) is False

    def test_internal_failure_returns_false(self):
        assert verify_signature("abc", "body", None) is False  # type: ignore[arg-type]
        assert verify_signature("sïg", "body", SECRET) is False

    @given(body=st.text(), secret=st.text(min_size=1))
    def test_round_trip(self, body, secret):
        assert verify_signature(compute_signature(body, secret), body, secret) is True


# ── WorkOS ────────────────────────────────────────────────────────────────


class TestSignatureHeaderParsing:
    """parse_signature_header requires both t and v1."""

    def test_parses_fields(self):
        parsed = parse_signature_header("t=1700000000,v1=abc123")
        assert parsed == WebhookSignatureHeader(timestamp="1700000000", signature="abc123")

    def test_tolerates_whitespace(self):
        parsed = parse_signature_header("t=1700000000, v1=abc123")
        assert parsed is not None
        assert parsed.signature == "abc123"

    def test_splits_on_first_equals(self):
        parsed = parse_signature_header("t=1,v1=abc=def")
        assert parsed is not None
        assert parsed.signature == "abc=def"

    def test_missing_timestamp(self):
        assert parse_signature_header("v1=abc") is None

    def test_missing_v1(self):
        assert parse_signature_header("t=1700000000") is None

    def test_empty_values(self):
        assert parse_signature_header("t=,v1=") is None

    def test_empty_header(self):
        assert parse_signature_header("") is None
        assert parse_signature_header(None) is None

    def test_str_round_trip(self):
        header = "t=5,v1=ff"
        assert str(parse_signature_header(header)) == header


class TestWorkOSSignature:
    """sign_webhook / verify_webhook_signature."""

    def test_header_format(self):
        payload = '{"event": "invitation.accepted"}'
        header = sign_webhook(payload, SECRET, 1700000000)
        expected = hmac.new(
            SECRET.encode(), f"1700000000.{payload}".encode(), hashlib.sha256
        ).hexdigest()
        assert header == f"t=1700000000,v1={expected}"

    @freeze_time("2026-01-01 00:00:00")
    def test_default_timestamp_is_now(self):
        header = sign_webhook("{}", SECRET)
        assert header.startswith(f"t={int(time.time())},v1=")

    def test_bytes_and_text_payloads_agree(self):
        assert sign_webhook(b"{}", SECRET, 10) == sign_webhook("{}", SECRET, 10)

    def test_non_utf8_body_round_trips(self):
        body = b"\xff\xfe{\"event\": \"invitation.accepted\"}"
        header = sign_webhook(body, SECRET, 1700000000)
        assert verify_webhook_signature(body, header, SECRET) is True

    def test_signs_exact_body_bytes(self):
        body = b"\x80{}"
        expected = hmac.new(SECRET.encode(), b"42." + body, hashlib.sha256).hexdigest()
        assert sign_webhook(body, SECRET, 42) == f"t=42,v1={expected}"

    def test_malformed_header_returns_false(self):
        assert verify_webhook_signature("{}", "v1=abc", SECRET) is False
        assert verify_webhook_signature("{}", "t=1", SECRET) is False
        assert verify_webhook_signature("{}", "garbage", SECRET) is False
        assert verify_webhook_signature("{}", None, SECRET) is False

    def test_non_ascii_digest_returns_false(self):
        assert verify_webhook_signature("{}", "t=1,v1=ünïcode", SECRET) is False

    def test_timestamp_is_part_of_signed_data(self):
        header = sign_webhook("{}", SECRET, 100)
        forged = header.replace("t=100", "t=101")
        assert verify_webhook_signature("{}", forged, SECRET) is False

    @given(
        payload=st.text(),
        secret=st.text(min_size=1),
        timestamp=st.integers(min_value=0, max_value=2**40),
    )
    def test_round_trip(self, payload, secret, timestamp):
        header = sign_webhook(payload, secret, timestamp)
        assert verify_webhook_signature(payload, header, secret) is True

    @given(payload=st.text(min_size=1), data=st.data())
    def test_payload_tamper_detected(self, payload, data):
        header = sign_webhook(payload, SECRET, 1700000000)
        index = data.draw(st.integers(min_value=0, max_value=len(payload) - 1))
        assert verify_webhook_signature(_flip(payload, index), header, SECRET) is False

    @given(secret=st.text(min_size=1), data=st.data())
    def test_secret_tamper_detected(self, secret, data):
        header = sign_webhook("{}", secret, 1700000000)
        index = data.draw(st.integers(min_value=0, max_value=len(secret) - 1))
        assert verify_webhook_signature("{}", header, _flip(secret, index)) is False

    @given(index=st.integers(min_value=0, max_value=63))
    def test_digest_tamper_detected(self, index):
        header = sign_webhook("{}", SECRET, 1700000000)
        parsed = parse_signature_header(header)
        assume(parsed is not None)
        tampered = WebhookSignatureHeader(
            timestamp=parsed.timestamp,
            signature=_flip(parsed.signature, index, _HEX),
        )
        assert verify_webhook_signature("{}", str(tampered), SECRET) is False


class TestTimestampFreshness:
    """Replay window around the signed timestamp."""

    def test_fresh_timestamp(self):
        header = sign_webhook("{}", SECRET, 1000)
        assert is_timestamp_fresh(header, 300, now=1200) is True

    def test_stale_timestamp(self):
        header = sign_webhook("{}", SECRET, 1000)
        assert is_timestamp_fresh(header, 300, now=1400) is False

    def test_future_timestamp(self):
        header = sign_webhook("{}", SECRET, 2000)
        assert is_timestamp_fresh(header, 300, now=1000) is False

    def test_boundary_is_inclusive(self):
        header = sign_webhook("{}", SECRET, 1000)
        assert is_timestamp_fresh(header, 300, now=1300) is True

    def test_millisecond_timestamp_is_scaled(self):
        header = sign_webhook("{}", SECRET, 1_700_000_000_123)
        assert is_timestamp_fresh(header, 300, now=1_700_000_100) is True

    def test_stale_millisecond_timestamp(self):
        header = sign_webhook("{}", SECRET, 1_700_000_000_000)
        assert is_timestamp_fresh(header, 300, now=1_700_000_400) is False

    def test_non_integer_timestamp(self):
        assert is_timestamp_fresh("t=yesterday,v1=abc", 300, now=0) is False

    def test_malformed_header(self):
        assert is_timestamp_fresh("v1=abc", 300) is False

    @freeze_time("2026-01-01 00:00:00")
    def test_uses_clock_by_default(self):
        header = sign_webhook("{}", SECRET)
        assert is_timestamp_fresh(header, 300) is True
