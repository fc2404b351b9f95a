"""Repositories for the role catalog and per-tenant role assignments."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.models import Role, UserRole
from galleria.db.repositories.base import use_session
from galleria.db.session import Database
from galleria.logging_config import get_logger
from galleria.tenant.accessor import TenantAccessorProtocol, default_accessor

logger = get_logger(__name__)


class RoleRepository:
    """Lookups on the global ``roles`` catalog."""

    def __init__(self, database: Database):
        self.db = database

    async def find_all(self) -> List[Role]:
        async with self.db.session() as session:
            result = await session.execute(select(Role).order_by(Role.name))
            return list(result.scalars().all())

    async def find_by_name(self, name: str, session: Optional[AsyncSession] = None) -> Optional[Role]:
        async with use_session(self.db, session) as s:
            result = await s.execute(select(Role).where(Role.name == name))
            return result.scalar_one_or_none()

    async def upsert_by_name(self, name: str) -> Role:
        """Existing role named ``name``, created if missing."""
        role = await self.find_by_name(name)
        if role is not None:
            return role
        try:
            async with self.db.session() as session:
                role = Role(name=name)
                session.add(role)
                await session.flush()
                await session.refresh(role)
        except IntegrityError:
            # Seeded concurrently by another process
            role = await self.find_by_name(name)
            if role is None:
                raise
        return role

    async def count(self) -> int:
        async with self.db.session() as session:
            return (await session.execute(select(func.count()).select_from(Role))).scalar_one()


class UserRoleRepository:
    """Role assignments in ``user_roles``.

    The table is tenant-scoped: reads only see rows of the tenant the
    connection is bound to, and inserts must name that same tenant.
    """

    def __init__(self, database: Database, accessor: TenantAccessorProtocol = default_accessor):
        self.db = database
        self.accessor = accessor

    async def assign(
        self,
        user_id: UUID,
        role_id: UUID,
        tenant_id: Optional[UUID] = None,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        """Grant a role; the tenant defaults to the active one.

        Returns False if the assignment already existed. With a
        caller-supplied session a duplicate raises ``IntegrityError``.
        """
        if tenant_id is None:
            tenant_id = self.accessor.get_tenant_id()
        stmt = insert(UserRole).values(user_id=user_id, role_id=role_id, tenant_id=tenant_id)
        if session is not None:
            await session.execute(stmt)
            return True
        try:
            async with self.db.session() as own:
                await own.execute(stmt)
        except IntegrityError:
            logger.debug(
                "Role assignment already exists",
                extra={"user_id": str(user_id), "role_id": str(role_id), "tenant_id": str(tenant_id)},
            )
            return False
        return True

    async def find_role_names(
        self,
        user_id: UUID,
        tenant_id: UUID,
        session: Optional[AsyncSession] = None,
    ) -> List[str]:
        stmt = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id, UserRole.tenant_id == tenant_id)
            .order_by(Role.name)
        )
        async with use_session(self.db, session) as s:
            return list((await s.execute(stmt)).scalars().all())

    async def remove(
        self,
        user_id: UUID,
        role_id: UUID,
        tenant_id: UUID,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        async with use_session(self.db, session) as s:
            result = await s.execute(
                delete(UserRole).where(
                    UserRole.user_id == user_id,
                    UserRole.role_id == role_id,
                    UserRole.tenant_id == tenant_id,
                )
            )
            return result.rowcount > 0
