import base64
import json

import pytest

from app.core.exceptions.domain import MalformedTokenError
from app.services.token_codec import TokenCodec


def segment(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).rstrip(b"=").decode()


class TestTokenCodec:
    """Test claims extraction from compact tokens."""

    def test_decodes_claims(self, codec: TokenCodec, sign):
        claims = {"originalTransactionId": "1000", "expiresDate": 1702592000000}

        assert codec.decode(sign(claims)) == claims

    def test_signature_is_not_verified(self, codec: TokenCodec):
        header = segment(json.dumps({"alg": "ES256", "x5c": []}).encode())
        payload = segment(json.dumps({"notificationType": "DID_RENEW"}).encode())

        assert codec.decode(f"{header}.{payload}.bm90LWEtc2lnbmF0dXJl") == {
            "notificationType": "DID_RENEW"
        }

    @pytest.mark.parametrize(
        "token",
        [None, "", "   ", 12345, "not-a-token", "a.b", "a.b.c", "...."],
    )
    def test_malformed_tokens_decode_to_none(self, codec: TokenCodec, token):
        assert codec.decode(token) is None

    def test_non_object_payload_decodes_to_none(self, codec: TokenCodec):
        header = segment(json.dumps({"alg": "HS256"}).encode())
        payload = segment(json.dumps([1, 2, 3]).encode())

        assert codec.decode(f"{header}.{payload}.c2ln") is None

    def test_decode_or_raise(self, codec: TokenCodec, sign):
        assert codec.decode_or_raise(sign({"a": 1})) == {"a": 1}

        with pytest.raises(MalformedTokenError, match="Malformed notification payload"):
            codec.decode_or_raise("garbage", "notification payload")
