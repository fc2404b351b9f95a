"""Tenant lifecycle: validation, uniqueness and creation with membership."""

from __future__ import annotations

import re
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from galleria.db.models import SLUG_PATTERN, Tenant
from galleria.db.repositories import MembershipRepository, TenantRepository
from galleria.db.session import Database
from galleria.errors import ConflictError, InvalidSlugError, NotFoundError
from galleria.logging_config import get_logger
from galleria.services.role import ROLE_ADMIN, RoleService

logger = get_logger(__name__)

_SLUG_RE = re.compile(SLUG_PATTERN)
_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
MAX_SLUG_LENGTH = 255


def slugify(value: str, fallback: str = "tenant") -> str:
    """Lowercase ``value`` and collapse every non-alphanumeric run to one hyphen."""
    slug = _NON_SLUG_CHARS.sub("-", value.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-") or fallback


def validate_slug(slug: str) -> str:
    if not slug or len(slug) > MAX_SLUG_LENGTH or not _SLUG_RE.match(slug):
        raise InvalidSlugError()
    return slug


class TenantService:
    """Business rules around the tenant registry."""

    def __init__(
        self,
        database: Database,
        tenants: Optional[TenantRepository] = None,
        memberships: Optional[MembershipRepository] = None,
        roles: Optional[RoleService] = None,
    ):
        self.db = database
        self.tenants = tenants or TenantRepository(database)
        self.memberships = memberships or MembershipRepository(database)
        self.roles = roles or RoleService(database)

    async def list(self, limit: Optional[int] = None, offset: int = 0) -> List[Tenant]:
        return await self.tenants.find_all(limit=limit, offset=offset)

    async def get(self, tenant_id: UUID) -> Tenant:
        tenant = await self.tenants.find_by_id(tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant", tenant_id)
        return tenant

    async def get_by_slug(self, slug: str) -> Tenant:
        tenant = await self.tenants.find_by_slug(slug)
        if tenant is None:
            raise NotFoundError("Tenant", slug)
        return tenant

    async def create(
        self,
        name: str,
        slug: str,
        external_reference_id: Optional[str] = None,
    ) -> Tenant:
        """Create a tenant.

        Raises:
            InvalidSlugError: If the slug is not lowercase-kebab
            ConflictError: If the slug (or external reference) is taken
        """
        validate_slug(slug)
        if await self.tenants.find_by_slug(slug) is not None:
            raise ConflictError(f"Tenant with slug '{slug}' already exists")
        try:
            tenant = await self.tenants.create(name, slug, external_reference_id)
        except IntegrityError as e:
            raise ConflictError(f"Tenant with slug '{slug}' already exists") from e
        logger.info("Tenant created", extra={"tenant_id": str(tenant.id), "slug": slug})
        return tenant

    async def create_for_user(self, user_id: UUID, name: str, slug: str) -> Tenant:
        """Create a tenant owned by ``user_id`` in one transaction.

        The owner becomes a member and holds the admin role.
        """
        validate_slug(slug)
        admin = await self.roles.catalog_role(ROLE_ADMIN)
        try:
            async with self.db.transaction() as session:
                tenant = await self.tenants.create(name, slug, session=session)
                await self.memberships.add(user_id, tenant.id, session=session)
                await self.roles.assign_in_transaction(session, user_id, tenant.id, admin)
        except IntegrityError as e:
            raise ConflictError(f"Tenant with slug '{slug}' already exists") from e
        logger.info(
            "Tenant created with owner",
            extra={"tenant_id": str(tenant.id), "user_id": str(user_id), "slug": slug},
        )
        return tenant

    async def update(self, tenant_id: UUID, **changes: Any) -> Tenant:
        changes = {name: value for name, value in changes.items() if value is not None}
        slug = changes.get("slug")
        if slug is not None:
            validate_slug(slug)
            existing = await self.tenants.find_by_slug(slug)
            if existing is not None and existing.id != tenant_id:
                raise ConflictError(f"Tenant with slug '{slug}' already exists")
        try:
            tenant = await self.tenants.update(tenant_id, **changes)
        except IntegrityError as e:
            raise ConflictError("Tenant slug or external reference already in use") from e
        if tenant is None:
            raise NotFoundError("Tenant", tenant_id)
        return tenant

    async def delete(self, tenant_id: UUID) -> None:
        if not await self.tenants.delete(tenant_id):
            raise NotFoundError("Tenant", tenant_id)
        logger.info("Tenant deleted", extra={"tenant_id": str(tenant_id)})
