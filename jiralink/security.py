"""Security-related helpers (webhook authenticity).

GitHub signs each delivery with HMAC-SHA256 over the raw request body and sends
the digest as `X-Hub-Signature-256: sha256=<hex>`.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

SIGNATURE_HEADER = "X-Hub-Signature-256"


@dataclass(frozen=True)
class WebhookSignature:
    algorithm: str
    digest: str


def _parse_signature_header(header_value: str) -> WebhookSignature | None:
    """Parse an X-Hub-Signature-256 header value."""
    if not header_value:
        return None

    algorithm, sep, digest = header_value.strip().partition("=")
    if sep != "=" or algorithm.lower() != "sha256" or not digest:
        return None

    try:
        bytes.fromhex(digest)
    except ValueError:
        return None

    return WebhookSignature(algorithm="sha256", digest=digest.lower())


def sign_payload(secret: str, body: bytes) -> str:
    mac = hmac.new(secret.encode("utf-8"), body, hashlib.sha256)
    return f"sha256={mac.hexdigest()}"


def verify_signature(secret: str, body: bytes, header_value: str) -> bool:
    """Check a delivery signature in constant time."""
    sig = _parse_signature_header(header_value)
    if sig is None:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, sig.digest)
