"""
Webhook signatures.

Outbound bodies are canonical JSON signed with the subscription secret;
the hex HMAC-SHA256 digest travels in the x-wakenet-signature header.
Receivers should verify the raw bytes before parsing them.
"""

import hashlib
import hmac
import json
from typing import Any

from .adapters.base import canonical_json

SIGNATURE_HEADER = "x-wakenet-signature"


def encode_payload(payload: Any) -> bytes:
    return canonical_json(payload).encode("utf-8")


def sign_payload(body: bytes | str, secret: str) -> str:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes | str, signature: str | None, secret: str) -> bool:
    """Constant-time check of a signature against the body."""
    if not signature:
        return False
    expected = sign_payload(body, secret).encode("utf-8")
    return hmac.compare_digest(expected, signature.strip().lower().encode("utf-8"))


def verify_signed_body(raw: bytes | str, signature: str | None, secret: str) -> Any | None:
    """
    Verify a signed webhook body and return its parsed JSON.

    Returns None when the signature does not match or the body is not JSON;
    the body is never parsed unless the signature verifies.
    """
    if not verify_signature(raw, signature, secret):
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
