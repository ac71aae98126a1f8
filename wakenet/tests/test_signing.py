"""
Tests for webhook signatures.
"""

import hashlib
import hmac

from wakenet.signing import encode_payload, sign_payload, verify_signature, verify_signed_body

SECRET = "a" * 64


class TestSigning:
    def test_matches_hmac_sha256_hex(self):
        body = b'{"a":1}'
        expected = hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()
        assert sign_payload(body, SECRET) == expected

    def test_canonical_encoding_sorts_keys(self):
        assert encode_payload({"b": 1, "a": "é"}) == '{"a":"é","b":1}'.encode("utf-8")

    def test_verify_round_trip(self):
        body = encode_payload({"id": 1})
        assert verify_signature(body, sign_payload(body, SECRET), SECRET)

    def test_verify_rejects_wrong_secret(self):
        body = encode_payload({"id": 1})
        assert not verify_signature(body, sign_payload(body, "other"), SECRET)

    def test_verify_rejects_missing_signature(self):
        assert not verify_signature(b"{}", None, SECRET)


class TestVerifySignedBody:
    def test_returns_parsed_payload(self):
        body = encode_payload({"id": 7, "event": {"title": "x"}})
        result = verify_signed_body(body, sign_payload(body, SECRET), SECRET)
        assert result == {"id": 7, "event": {"title": "x"}}

    def test_tampered_body_returns_none(self):
        body = encode_payload({"id": 7})
        signature = sign_payload(body, SECRET)
        assert verify_signed_body(encode_payload({"id": 8}), signature, SECRET) is None

    def test_invalid_json_with_valid_signature_returns_none(self):
        body = b"not json"
        assert verify_signed_body(body, sign_payload(body, SECRET), SECRET) is None

    def test_non_ascii_signature_is_rejected(self):
        assert not verify_signature(b"{}", "é" * 64, SECRET)
        assert verify_signed_body(b"{}", "é" * 64, SECRET) is None
