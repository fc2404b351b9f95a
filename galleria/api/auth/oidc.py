"""Keycloak OpenID Connect client for the browser login flow.

Covers discovery, the authorization redirect, the code exchange, ID token
verification (PyJWT against the realm JWKS) and the end-session redirect.
Claims handed to the rest of the application come only from a verified ID
token, optionally enriched by the userinfo endpoint.
"""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
import jwt

from galleria.config import OIDCConfig
from galleria.errors import IdentityProviderError
from galleria.logging_config import get_logger
from galleria.services.membership_sync import extract_organizations

logger = get_logger(__name__)

ID_TOKEN_ALGORITHMS = ["RS256", "RS384", "RS512", "ES256", "ES384", "PS256"]


@dataclass
class IdentityClaims:
    """Verified identity of a user who completed login."""

    subject: str
    email: str
    organizations: Optional[List[str]] = None
    raw: Dict[str, Any] = field(default_factory=dict)
    id_token: Optional[str] = None


def new_state() -> str:
    return secrets.token_urlsafe(24)


class OIDCClient:
    """Authorization code flow against one Keycloak realm."""

    def __init__(
        self,
        config: OIDCConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self._http = http_client or httpx.AsyncClient(timeout=10.0)
        self._owns_http = http_client is None
        self._metadata: Optional[Dict[str, Any]] = None
        self._jwk_client: Optional[jwt.PyJWKClient] = None
        self._lock = asyncio.Lock()

    async def discover(self) -> Dict[str, Any]:
        """Fetch (once) the realm's OpenID provider metadata."""
        if self._metadata is not None:
            return self._metadata
        async with self._lock:
            if self._metadata is None:
                url = f"{self.config.issuer_url}/.well-known/openid-configuration"
                try:
                    response = await self._http.get(url)
                    response.raise_for_status()
                except httpx.HTTPError as e:
                    logger.error(f"OIDC discovery failed: {e}")
                    raise IdentityProviderError("Identity provider unavailable") from e
                self._metadata = response.json()
                self._jwk_client = jwt.PyJWKClient(self._metadata["jwks_uri"])
        return self._metadata

    async def authorization_url(self, state: str, nonce: str) -> str:
        metadata = await self.discover()
        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "scope": self.config.scope,
            "state": state,
            "nonce": nonce,
        }
        return f"{metadata['authorization_endpoint']}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        metadata = await self.discover()
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "client_id": self.config.client_id,
        }
        if self.config.client_secret:
            form["client_secret"] = self.config.client_secret
        try:
            response = await self._http.post(metadata["token_endpoint"], data=form)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise IdentityProviderError() from e
        return response.json()

    async def fetch_userinfo(self, access_token: str) -> Dict[str, Any]:
        metadata = await self.discover()
        endpoint = metadata.get("userinfo_endpoint")
        if not endpoint:
            return {}
        try:
            response = await self._http.get(
                endpoint, headers={"Authorization": f"Bearer {access_token}"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Userinfo request failed: {e}")
            return {}
        return response.json()

    async def verify_id_token(self, id_token: str, nonce: Optional[str]) -> Dict[str, Any]:
        await self.discover()
        if self._jwk_client is None:
            raise IdentityProviderError("Identity provider metadata has no JWKS")
        try:
            # PyJWKClient fetches keys synchronously
            signing_key = await asyncio.to_thread(
                self._jwk_client.get_signing_key_from_jwt, id_token
            )
            claims = jwt.decode(
                id_token,
                signing_key.key,
                algorithms=ID_TOKEN_ALGORITHMS,
                audience=self.config.client_id,
                issuer=self.config.issuer_url,
            )
        except jwt.PyJWTError as e:
            logger.warning(f"ID token rejected: {e}")
            raise IdentityProviderError("Invalid ID token") from e
        if nonce is not None and claims.get("nonce") != nonce:
            raise IdentityProviderError("ID token nonce mismatch")
        return claims

    async def handle_callback(self, code: str, nonce: Optional[str]) -> IdentityClaims:
        """Exchange ``code`` and return the verified identity.

        Raises:
            IdentityProviderError: On any exchange or verification failure,
                or if the ID token lacks ``sub`` or ``email``
        """
        tokens = await self.exchange_code(code)
        id_token = tokens.get("id_token")
        if not id_token:
            raise IdentityProviderError("Token response has no ID token")
        claims = await self.verify_id_token(id_token, nonce)

        if not claims.get("sub"):
            raise IdentityProviderError("ID token missing sub claim")
        if not claims.get("email"):
            raise IdentityProviderError("ID token missing email claim")

        organizations = extract_organizations(claims)
        if organizations is None and tokens.get("access_token"):
            userinfo = await self.fetch_userinfo(tokens["access_token"])
            organizations = extract_organizations(userinfo)

        return IdentityClaims(
            subject=claims["sub"],
            email=claims["email"],
            organizations=organizations,
            raw=claims,
            id_token=id_token,
        )

    async def logout_url(self, post_logout_redirect_uri: str, id_token_hint: Optional[str] = None) -> str:
        metadata = await self.discover()
        endpoint = metadata.get(
            "end_session_endpoint",
            f"{self.config.issuer_url}/protocol/openid-connect/logout",
        )
        params = {
            "post_logout_redirect_uri": post_logout_redirect_uri,
            "client_id": self.config.client_id,
        }
        if id_token_hint:
            params["id_token_hint"] = id_token_hint
        return f"{endpoint}?{urlencode(params)}"

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()
