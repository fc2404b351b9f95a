"""Automatic tenant creation for users who belong to no tenant."""

from __future__ import annotations

import time
from typing import Callable, Optional

from galleria.db.models import Tenant, User
from galleria.logging_config import get_logger
from galleria.services.tenant import TenantService, slugify
from galleria.services.user import UserService
from galleria.tenant.logging import log_tenant_operation

logger = get_logger(__name__)


def email_local_part(email: str) -> str:
    return email.split("@", 1)[0]


class ProvisioningService:
    """Creates a personal tenant for a user and makes it their last tenant."""

    def __init__(
        self,
        tenant_service: TenantService,
        user_service: UserService,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.tenant_service = tenant_service
        self.user_service = user_service
        self._clock = clock or time.time

    def tenant_name_for(self, user: User) -> str:
        return f"{email_local_part(user.email)}'s Organization"

    def tenant_slug_for(self, user: User) -> str:
        # e.g. "alice-1718000000000"
        suffix = int(self._clock() * 1000)
        return f"{slugify(email_local_part(user.email), fallback='user')}-{suffix}"

    async def provision_for_user(self, user: User) -> Tenant:
        """Create the tenant and its membership, then record it as last tenant.

        Errors propagate; callers decide whether provisioning is best-effort.
        """
        tenant = await self.tenant_service.create_for_user(
            user.id,
            name=self.tenant_name_for(user),
            slug=self.tenant_slug_for(user),
        )
        await self.user_service.update_last_tenant(user.id, tenant.id)
        user.last_tenant_id = tenant.id
        log_tenant_operation(
            logger,
            "provision_tenant",
            provisioned_tenant_id=str(tenant.id),
            slug=tenant.slug,
        )
        return tenant
