"""Role catalog and per-tenant role checks.

The catalog is defined here in code and mirrored into the ``roles`` table
by :meth:`RoleService.seed_roles`, which is safe to run on every start.
Assignments live in ``user_roles`` and are scoped to one tenant; writes
and reads bind the transaction to that tenant so row level security
admits them even when it is not the request's active tenant.
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.models import Role
from galleria.db.repositories import MembershipRepository, RoleRepository, UserRoleRepository
from galleria.db.rls import set_local_tenant
from galleria.db.session import Database
from galleria.errors import NotFoundError, RoleRequiredError
from galleria.logging_config import get_logger

logger = get_logger(__name__)

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_VIEWER = "viewer"

ROLE_NAMES = (ROLE_ADMIN, ROLE_USER, ROLE_VIEWER)


class RoleService:
    def __init__(
        self,
        database: Database,
        roles: Optional[RoleRepository] = None,
        user_roles: Optional[UserRoleRepository] = None,
        memberships: Optional[MembershipRepository] = None,
    ):
        self.db = database
        self.roles = roles or RoleRepository(database)
        self.user_roles = user_roles or UserRoleRepository(database)
        self.memberships = memberships or MembershipRepository(database)

    async def seed_roles(self) -> List[Role]:
        """Make sure every catalog role exists; returns them in catalog order."""
        seeded = [await self.roles.upsert_by_name(name) for name in ROLE_NAMES]
        logger.info("Roles seeded", extra={"roles": list(ROLE_NAMES)})
        return seeded

    async def list(self) -> List[Role]:
        return await self.roles.find_all()

    async def get_by_name(self, name: str) -> Role:
        role = await self.roles.find_by_name(name)
        if role is None:
            raise NotFoundError("Role", name)
        return role

    async def catalog_role(self, name: str) -> Role:
        """Catalog role ``name``, inserted if the catalog was never seeded.

        Raises:
            NotFoundError: If ``name`` is not part of the catalog
        """
        if name not in ROLE_NAMES:
            raise NotFoundError("Role", name)
        return await self.roles.upsert_by_name(name)

    async def assign_in_transaction(
        self,
        session: AsyncSession,
        user_id: UUID,
        tenant_id: UUID,
        role: Role,
    ) -> None:
        """Grant ``role`` inside the caller's open transaction."""
        await set_local_tenant(session, tenant_id)
        await self.user_roles.assign(user_id, role.id, tenant_id, session=session)

    async def assign(self, user_id: UUID, tenant_id: UUID, role_name: str) -> bool:
        """Grant ``role_name`` to the user in ``tenant_id``.

        Returns False when the user already held the role there.
        """
        role = await self.catalog_role(role_name)
        try:
            async with self.db.transaction() as session:
                await self.assign_in_transaction(session, user_id, tenant_id, role)
        except IntegrityError:
            return False
        logger.info(
            "Role assigned",
            extra={"user_id": str(user_id), "tenant_id": str(tenant_id), "role": role_name},
        )
        return True

    async def grant_to_member(self, user_id: UUID, tenant_id: UUID, role_name: str) -> List[str]:
        """Grant ``role_name`` to a member of ``tenant_id``; returns their roles there.

        Raises:
            NotFoundError: If the role is unknown or the user is not a member
        """
        role = await self.catalog_role(role_name)
        async with self.db.transaction() as session:
            await set_local_tenant(session, tenant_id)
            if not await self.memberships.has_access(user_id, tenant_id, session=session):
                raise NotFoundError("Member", user_id)
            held = await self.user_roles.find_role_names(user_id, tenant_id, session=session)
            if role.name not in held:
                await self.user_roles.assign(user_id, role.id, tenant_id, session=session)
                held = sorted(held + [role.name])
        logger.info(
            "Role granted to member",
            extra={"user_id": str(user_id), "tenant_id": str(tenant_id), "role": role_name},
        )
        return held

    async def revoke(self, user_id: UUID, tenant_id: UUID, role_name: str) -> bool:
        role = await self.get_by_name(role_name)
        async with self.db.transaction() as session:
            await set_local_tenant(session, tenant_id)
            return await self.user_roles.remove(user_id, role.id, tenant_id, session=session)

    async def role_names_for(self, user_id: UUID, tenant_id: UUID) -> List[str]:
        async with self.db.transaction() as session:
            await set_local_tenant(session, tenant_id)
            return await self.user_roles.find_role_names(user_id, tenant_id, session=session)

    async def require_role(self, user_id: UUID, tenant_id: UUID, role_name: str) -> None:
        """Raise unless the user holds ``role_name`` in ``tenant_id``.

        Raises:
            RoleRequiredError: If the role is missing
        """
        if role_name not in await self.role_names_for(user_id, tenant_id):
            logger.warning(
                "Role check failed",
                extra={"user_id": str(user_id), "tenant_id": str(tenant_id), "role": role_name},
            )
            raise RoleRequiredError(role_name)
