"""Tenant resolution for inbound requests.

Priority chain, first match wins:

1. Tenant claim of an ``Authorization: Bearer`` token
2. ``current_tenant_id`` stored in the server-side session
3. Auto-provision: authenticated user without memberships gets a new tenant
4. Auto-select: authenticated user with memberships gets the last used
   (or oldest) one

The outcome is merged into the active request context. Provisioning and
auto-selection are best-effort; their failures are logged and the request
continues without a tenant, which row level security turns into "no rows".
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from galleria.cache.sessions import TenantSelectionSession
from galleria.db.models import User
from galleria.errors import InvalidTenantIdentifierError
from galleria.logging_config import get_logger
from galleria.services.provisioning import ProvisioningService
from galleria.services.user import UserService
from galleria.tenant.claims import ClaimsDecoder, extract_bearer_token
from galleria.tenant.context import update_context
from galleria.tenant.logging import get_tenant_log_context

logger = get_logger(__name__)


def parse_tenant_id(value: Any) -> UUID:
    """Parse a tenant identifier, rejecting anything that is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as e:
        raise InvalidTenantIdentifierError() from e


class TenantResolver:
    """Computes the request's tenant and writes it into the request context."""

    def __init__(
        self,
        user_service: UserService,
        provisioning: ProvisioningService,
        claims_decoder: ClaimsDecoder,
        claim_name: str = "tenant_id",
        auto_provision: bool = True,
    ):
        self.user_service = user_service
        self.provisioning = provisioning
        self.claims_decoder = claims_decoder
        self.claim_name = claim_name
        self.auto_provision = auto_provision

    def tenant_from_authorization(self, authorization: Optional[str]) -> Optional[UUID]:
        """Tenant claim of a bearer token, if any.

        Only a string claim counts. A string that is not a UUID raises
        InvalidTenantIdentifierError.
        """
        token = extract_bearer_token(authorization)
        if token is None:
            return None
        claims = self.claims_decoder.decode(token)
        if not claims:
            return None
        value = claims.get(self.claim_name)
        if not isinstance(value, str):
            return None
        return parse_tenant_id(value)

    async def resolve(
        self,
        authorization: Optional[str],
        session: Optional[TenantSelectionSession],
        user: Optional[User],
    ) -> Optional[UUID]:
        """Resolve the tenant and merge tenant/user ids into the context.

        Fields the chain did not produce keep their previous context values.

        Raises:
            InvalidTenantIdentifierError: If a bearer tenant claim is malformed
        """
        if user is not None:
            # Lets the membership policy show this user's rows before a tenant is known
            update_context(user_id=user.id)

        tenant_id = self.tenant_from_authorization(authorization)
        source = "bearer"

        if tenant_id is None and session is not None and session.current_tenant_id:
            tenant_id = parse_tenant_id(session.current_tenant_id)
            source = "session"

        if tenant_id is None and user is not None:
            tenant_id = await self._select_for_user(session, user)
            source = "auto"

        if tenant_id is not None:
            update_context(tenant_id=tenant_id)
            logger.debug(
                "Tenant resolved",
                extra={**get_tenant_log_context(), "source": source},
            )
        return tenant_id

    async def _select_for_user(
        self,
        session: Optional[TenantSelectionSession],
        user: User,
    ) -> Optional[UUID]:
        try:
            tenant_id = await self.user_service.determine_current_tenant(user)
            if tenant_id is None:
                if not self.auto_provision:
                    return None
                tenant = await self.provisioning.provision_for_user(user)
                tenant_id = tenant.id
            if session is not None:
                session.current_tenant_id = tenant_id
                await session.save()
            return tenant_id
        except Exception:
            logger.error(
                "Failed to auto-select or provision tenant",
                exc_info=True,
                extra={**get_tenant_log_context(), "user_id": str(user.id)},
            )
            return None
