"""Repository for the global tenant registry."""

from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.models import Tenant
from galleria.db.repositories.base import use_session
from galleria.db.session import Database

UPDATABLE_FIELDS = frozenset({"name", "slug", "external_reference_id"})


class TenantRepository:
    """CRUD over ``tenants``. The table has no row level security."""

    def __init__(self, database: Database):
        self.db = database

    async def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[Tenant]:
        stmt = select(Tenant).order_by(Tenant.name, Tenant.id).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def find_by_id(self, tenant_id: UUID, session: Optional[AsyncSession] = None) -> Optional[Tenant]:
        async with use_session(self.db, session) as s:
            return await s.get(Tenant, tenant_id)

    async def find_by_ids(self, tenant_ids: Iterable[UUID]) -> List[Tenant]:
        ids = list(tenant_ids)
        if not ids:
            return []
        async with self.db.session() as session:
            result = await session.execute(select(Tenant).where(Tenant.id.in_(ids)))
            return list(result.scalars().all())

    async def find_by_slug(self, slug: str, session: Optional[AsyncSession] = None) -> Optional[Tenant]:
        async with use_session(self.db, session) as s:
            result = await s.execute(select(Tenant).where(Tenant.slug == slug))
            return result.scalar_one_or_none()

    async def find_by_external_reference_id(
        self,
        external_reference_id: str,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Tenant]:
        async with use_session(self.db, session) as s:
            result = await s.execute(
                select(Tenant).where(Tenant.external_reference_id == external_reference_id)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        name: str,
        slug: str,
        external_reference_id: Optional[str] = None,
        session: Optional[AsyncSession] = None,
    ) -> Tenant:
        """Insert a tenant. Raises ``IntegrityError`` on a duplicate slug or reference."""
        tenant = Tenant(name=name, slug=slug, external_reference_id=external_reference_id)
        async with use_session(self.db, session) as s:
            s.add(tenant)
            await s.flush()
            await s.refresh(tenant)
        return tenant

    async def update(self, tenant_id: UUID, **changes: Any) -> Optional[Tenant]:
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update tenant field(s): {', '.join(sorted(unknown))}")
        async with self.db.session() as session:
            tenant = await session.get(Tenant, tenant_id)
            if tenant is None:
                return None
            for name, value in changes.items():
                setattr(tenant, name, value)
            await session.flush()
            await session.refresh(tenant)
            return tenant

    async def delete(self, tenant_id: UUID) -> bool:
        """Hard delete; owned memberships, albums and photos cascade."""
        async with self.db.session() as session:
            result = await session.execute(delete(Tenant).where(Tenant.id == tenant_id))
            return result.rowcount > 0

    async def count(self) -> int:
        async with self.db.session() as session:
            return (await session.execute(select(func.count()).select_from(Tenant))).scalar_one()
