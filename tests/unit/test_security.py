"""Tests for callback signatures and the internal service key."""

import hashlib
import hmac

import pytest
from hypothesis import given
from hypothesis import strategies as st

from src.orchestrator.core.security import (
    compute_signature,
    verify_internal_key,
    verify_signature,
)

pytestmark = pytest.mark.unit

SECRET = "s" * 32


class TestCallbackSignature:
    def test_signature_is_hmac_sha256_hex(self):
        body = b'{"job_id": "abc", "type": "heartbeat"}'
        expected = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()

        assert compute_signature(body, SECRET) == expected

    def test_valid_signature_accepted(self):
        body = b'{"type": "claim"}'
        assert verify_signature(body, compute_signature(body, SECRET), SECRET)

    def test_uppercase_hex_accepted(self):
        body = b'{"type": "claim"}'
        assert verify_signature(body, compute_signature(body, SECRET).upper(), SECRET)

    def test_missing_signature_rejected(self):
        assert not verify_signature(b"{}", None, SECRET)
        assert not verify_signature(b"{}", "", SECRET)

    def test_wrong_secret_rejected(self):
        body = b'{"type": "claim"}'
        assert not verify_signature(body, compute_signature(body, "x" * 32), SECRET)

    @given(body=st.binary(min_size=1, max_size=512), tamper=st.binary(min_size=1, max_size=8))
    def test_tampered_body_rejected(self, body: bytes, tamper: bytes):
        signature = compute_signature(body, SECRET)
        assert not verify_signature(body + tamper, signature, SECRET)


class TestInternalKey:
    def test_open_when_not_configured(self):
        assert verify_internal_key(None, None)
        assert verify_internal_key("anything", None)

    def test_matching_key_accepted(self):
        assert verify_internal_key("k" * 40, "k" * 40)

    def test_missing_or_wrong_key_rejected(self):
        assert not verify_internal_key(None, "expected-key")
        assert not verify_internal_key("other-key", "expected-key")
