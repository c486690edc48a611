from typing import Any

from jose import jwt
from jose.exceptions import JOSEError
from loguru import logger

from app.core.exceptions.domain import MalformedTokenError


class TokenCodec:
    """
    Decode-only reader for compact JWS/JWT tokens.

    Apple signs transactions and notifications as JWS; this codec extracts
    their claims without verifying the signature.
    """

    def decode(self, token: Any) -> dict[str, Any] | None:
        """
        Extract the claims of a token.

        Args:
            token: The compact serialized token

        Returns:
            dict | None: The claims, or None if the token is malformed or its
            payload is not a JSON object. Never raises for malformed input.
        """
        if not isinstance(token, str) or not token.strip():
            return None

        try:
            claims = jwt.get_unverified_claims(token.strip())
        except (JOSEError, ValueError, TypeError) as err:
            logger.debug(f"Token could not be decoded: {err}")
            return None

        if not isinstance(claims, dict):
            return None

        return claims

    def decode_or_raise(self, token: Any, what: str = "token") -> dict[str, Any]:
        """
        Like decode(), but a malformed token is an error.

        Raises:
            MalformedTokenError: If the token cannot be decoded
        """
        claims = self.decode(token)

        if claims is None:
            logger.error(f"Malformed {what}")
            raise MalformedTokenError(f"Malformed {what}")

        return claims
