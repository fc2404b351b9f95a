"""Explicit tenant switching.

Membership is the only authority: there is no admin bypass here.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from galleria.cache.sessions import TenantSelectionSession
from galleria.db.models import User
from galleria.db.repositories import MembershipRepository
from galleria.errors import AuthenticationRequiredError, TenantAccessDeniedError
from galleria.logging_config import get_logger
from galleria.services.user import UserService
from galleria.tenant.context import get_context_or_none, update_context
from galleria.tenant.logging import log_tenant_operation

logger = get_logger(__name__)


class TenantSwitchService:
    def __init__(self, memberships: MembershipRepository, user_service: UserService):
        self.memberships = memberships
        self.user_service = user_service

    async def switch(
        self,
        session: TenantSelectionSession,
        user: Optional[User],
        tenant_id: UUID,
    ) -> UUID:
        """Make ``tenant_id`` the session's current tenant.

        Order matters: the session is saved before the last-tenant hint is
        written, and nothing changes unless the membership check passes.

        Raises:
            AuthenticationRequiredError: If there is no authenticated user
            TenantAccessDeniedError: If the user is not a member of the tenant
        """
        if user is None:
            raise AuthenticationRequiredError()

        if not await self.memberships.has_access(user.id, tenant_id):
            log_tenant_operation(
                logger, "switch_tenant", success=False, requested_tenant_id=str(tenant_id)
            )
            raise TenantAccessDeniedError()

        session.current_tenant_id = tenant_id
        await session.save()
        await self.user_service.update_last_tenant(user.id, tenant_id)

        if get_context_or_none() is not None:
            update_context(tenant_id=tenant_id)
        log_tenant_operation(logger, "switch_tenant", requested_tenant_id=str(tenant_id))
        return tenant_id
