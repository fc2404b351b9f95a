"""Repository for user-tenant memberships.

Under row level security a session sees a membership row when the row's
user matches ``app.user_id`` or its tenant matches ``app.tenant_id``.
Inserting is always allowed so provisioning and sync can grant access
before a tenant is active.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.models import Tenant, User, UserTenant
from galleria.db.repositories.base import use_session
from galleria.db.session import Database
from galleria.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class MembershipDiff:
    """Outcome of :meth:`MembershipRepository.sync_tenants`."""

    added: List[UUID] = field(default_factory=list)
    removed: List[UUID] = field(default_factory=list)
    unchanged: List[UUID] = field(default_factory=list)


class MembershipRepository:
    def __init__(self, database: Database):
        self.db = database

    async def find_tenants_for_user(self, user_id: UUID) -> List[Tenant]:
        """Tenants the user belongs to, oldest membership first."""
        stmt = (
            select(Tenant)
            .join(UserTenant, UserTenant.tenant_id == Tenant.id)
            .where(UserTenant.user_id == user_id)
            .order_by(UserTenant.created_at, UserTenant.tenant_id)
        )
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def find_tenant_ids_for_user(self, user_id: UUID) -> List[UUID]:
        stmt = (
            select(UserTenant.tenant_id)
            .where(UserTenant.user_id == user_id)
            .order_by(UserTenant.created_at, UserTenant.tenant_id)
        )
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def find_users_for_tenant(self, tenant_id: UUID) -> List[User]:
        stmt = (
            select(User)
            .join(UserTenant, UserTenant.user_id == User.id)
            .where(UserTenant.tenant_id == tenant_id)
            .order_by(UserTenant.created_at, User.id)
        )
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def has_access(
        self,
        user_id: UUID,
        tenant_id: UUID,
        session: Optional[AsyncSession] = None,
    ) -> bool:
        stmt = select(func.count()).select_from(UserTenant).where(
            UserTenant.user_id == user_id,
            UserTenant.tenant_id == tenant_id,
        )
        async with use_session(self.db, session) as s:
            return (await s.execute(stmt)).scalar_one() > 0

    async def count_for_user(self, user_id: UUID) -> int:
        stmt = select(func.count()).select_from(UserTenant).where(UserTenant.user_id == user_id)
        async with self.db.session() as session:
            return (await session.execute(stmt)).scalar_one()

    async def add(self, user_id: UUID, tenant_id: UUID, session: Optional[AsyncSession] = None) -> bool:
        """Grant access. Returns False if the membership already existed.

        With a caller-supplied session the insert joins the caller's
        transaction and a duplicate raises ``IntegrityError`` instead.
        """
        # Core insert: no RETURNING, so the row need not be visible afterwards
        stmt = insert(UserTenant).values(user_id=user_id, tenant_id=tenant_id)
        if session is not None:
            await session.execute(stmt)
            return True
        try:
            async with self.db.session() as own:
                await own.execute(stmt)
        except IntegrityError:
            logger.debug(
                "Membership already exists",
                extra={"user_id": str(user_id), "tenant_id": str(tenant_id)},
            )
            return False
        return True

    async def remove(self, user_id: UUID, tenant_id: UUID) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                delete(UserTenant).where(
                    UserTenant.user_id == user_id,
                    UserTenant.tenant_id == tenant_id,
                )
            )
            return result.rowcount > 0

    async def sync_tenants(self, user_id: UUID, tenant_ids: Iterable[UUID]) -> MembershipDiff:
        """Make the user's identity-provider memberships exactly ``tenant_ids``.

        Missing rows are inserted (duplicates from concurrent syncs are
        ignored). Rows not in ``tenant_ids`` are deleted only when their
        tenant carries an ``external_reference_id``; personal tenants and
        tenants created through the API are not the provider's to revoke.
        """
        target = list(dict.fromkeys(tenant_ids))
        current = await self.find_tenant_ids_for_user(user_id)
        current_set = set(current)
        target_set = set(target)

        diff = MembershipDiff()
        for tenant_id in target:
            if tenant_id in current_set:
                diff.unchanged.append(tenant_id)
            elif await self.add(user_id, tenant_id):
                diff.added.append(tenant_id)
            else:
                diff.unchanged.append(tenant_id)

        candidates = [tenant_id for tenant_id in current if tenant_id not in target_set]
        if candidates:
            async with self.db.session() as session:
                managed = set(
                    (
                        await session.execute(
                            select(Tenant.id).where(
                                Tenant.id.in_(candidates),
                                Tenant.external_reference_id.isnot(None),
                            )
                        )
                    ).scalars()
                )
                stale = [tenant_id for tenant_id in candidates if tenant_id in managed]
                if stale:
                    await session.execute(
                        delete(UserTenant).where(
                            UserTenant.user_id == user_id,
                            UserTenant.tenant_id.in_(stale),
                        )
                    )
            diff.removed.extend(stale)
        return diff

    async def remove_all_for_user(self, user_id: UUID) -> int:
        async with self.db.session() as session:
            result = await session.execute(delete(UserTenant).where(UserTenant.user_id == user_id))
            return result.rowcount

    async def remove_all_for_tenant(self, tenant_id: UUID) -> int:
        async with self.db.session() as session:
            result = await session.execute(delete(UserTenant).where(UserTenant.tenant_id == tenant_id))
            return result.rowcount
