"""Bearer token claim decoding for tenant resolution.

Two decoders share one interface, ``decode(token) -> dict | None``:

- :class:`JWTClaimsDecoder` verifies the token with PyJWT (shared secret or
  JWKS) and returns the verified payload.
- :class:`UnverifiedClaimsDecoder` only base64url-decodes the payload
  segment. It exists for local development and for deployments where a
  gateway has already verified the token; production configuration refuses
  it (see ``GalleriaConfig.validate``).

:func:`build_claims_decoder` chooses between them from configuration.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional, Protocol

import jwt

from galleria.config import TokenConfig
from galleria.logging_config import get_logger

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


class ClaimsDecoder(Protocol):
    def decode(self, token: str) -> Optional[dict[str, Any]]: ...


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    if authorization[: len(BEARER_PREFIX)].lower() != BEARER_PREFIX:
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def decode_unverified_claims(token: str) -> Optional[dict[str, Any]]:
    """Decode the payload segment of a JWT without checking its signature.

    Returns None when the token does not have three segments, the payload is
    not valid base64url JSON, or the JSON is not an object.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        payload = json.loads(raw)
    except (binascii.Error, UnicodeError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    return payload


class UnverifiedClaimsDecoder:
    """Reads claims without signature verification."""

    def decode(self, token: str) -> Optional[dict[str, Any]]:
        return decode_unverified_claims(token)


class IgnoreBearerDecoder:
    """Ignores bearer tokens entirely (no verification configured)."""

    def decode(self, token: str) -> Optional[dict[str, Any]]:
        return None


class JWTClaimsDecoder:
    """Verifies bearer tokens with PyJWT before exposing their claims."""

    def __init__(
        self,
        secret: Optional[str] = None,
        jwks_url: Optional[str] = None,
        algorithms: Optional[list[str]] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
    ):
        if not secret and not jwks_url:
            raise ValueError("JWTClaimsDecoder needs a secret or a JWKS URL")
        self.secret = secret
        self.algorithms = algorithms or (["HS256"] if secret else ["RS256"])
        self.audience = audience
        self.issuer = issuer
        self._jwks_client = jwt.PyJWKClient(jwks_url) if jwks_url else None

    def _signing_key(self, token: str) -> Any:
        if self._jwks_client is not None:
            return self._jwks_client.get_signing_key_from_jwt(token).key
        return self.secret

    def decode(self, token: str) -> Optional[dict[str, Any]]:
        try:
            return jwt.decode(
                token,
                self._signing_key(token),
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_aud": self.audience is not None},
            )
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected bearer token: {e}")
            return None


def build_claims_decoder(token_config: TokenConfig) -> ClaimsDecoder:
    """Pick the claims decoder for the configured verification mode."""
    if token_config.verification_enabled:
        return JWTClaimsDecoder(
            secret=token_config.secret,
            jwks_url=token_config.jwks_url,
            algorithms=token_config.algorithms,
            audience=token_config.audience,
            issuer=token_config.issuer,
        )
    if token_config.allow_unverified_claims:
        logger.warning("Bearer tenant claims are read WITHOUT signature verification")
        return UnverifiedClaimsDecoder()
    return IgnoreBearerDecoder()
