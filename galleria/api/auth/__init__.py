"""Identity provider integration."""

from galleria.api.auth.oidc import IdentityClaims, OIDCClient, new_state

__all__ = ["IdentityClaims", "OIDCClient", "new_state"]
