"""Callback signatures and service key checks."""

import hashlib
import hmac
import secrets

SIGNATURE_HEADER = "X-Signature"
INTERNAL_KEY_HEADER = "X-Internal-Key"


def compute_signature(body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest of a raw request body."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Check a workflow runner callback signature. Returns False on any mismatch."""
    if not signature:
        return False
    expected = compute_signature(body, secret)
    return hmac.compare_digest(signature.strip().lower(), expected)


def verify_internal_key(provided: str | None, expected: str | None) -> bool:
    """Check the service-to-service key. Open when no key is configured."""
    if expected is None:
        return True
    if provided is None:
        return False
    return secrets.compare_digest(provided, expected)
