"""Membership synchronization from identity provider organizations.

After login the identity provider reports which organizations (or groups)
the user belongs to. Each external identifier maps to one local tenant
through ``tenants.external_reference_id``; unknown identifiers create their
tenant on first sight. The user's memberships in provider-managed tenants
(those with an external reference) are then made to match the reported set
exactly; personal and API-created tenants keep their members.

Running the sync twice with the same input leaves the same rows: inserts
skip existing rows and tolerate duplicate-key races with concurrent logins.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from galleria.db.models import Tenant
from galleria.db.repositories import MembershipRepository, TenantRepository
from galleria.logging_config import LogContext, get_logger, log_operation
from galleria.services.tenant import slugify

logger = get_logger(__name__)

ORGANIZATION_PREFIX = "org-"
MAX_SLUG_ATTEMPTS = 20


@dataclass
class SyncResult:
    """Membership changes made by one sync run."""

    tenant_ids: List[UUID] = field(default_factory=list)
    added: List[UUID] = field(default_factory=list)
    removed: List[UUID] = field(default_factory=list)
    unchanged: List[UUID] = field(default_factory=list)
    created_tenants: List[UUID] = field(default_factory=list)


def normalize_external_id(value: str) -> str:
    """Strip whitespace and the leading slash of Keycloak group paths."""
    return value.strip().lstrip("/")


def extract_organizations(claims: Mapping[str, Any]) -> Optional[List[str]]:
    """External organization identifiers reported in identity claims.

    Looks at ``organizations``/``organization_ids`` arrays and at ``groups``
    entries carrying the ``org-`` prefix. Keycloak's organization claim may
    also be an object keyed by organization alias.

    Returns None when the claims carry no organization information at all,
    so callers can tell "no organizations" from "not reported".
    """
    reported = False
    found: List[str] = []

    for key in ("organizations", "organization_ids", "organization"):
        value = claims.get(key)
        if isinstance(value, Mapping):
            reported = True
            found.extend(str(k) for k in value.keys())
        elif isinstance(value, (list, tuple)):
            reported = True
            found.extend(str(v) for v in value if isinstance(v, (str, int)))

    groups = claims.get("groups")
    if isinstance(groups, (list, tuple)):
        org_groups = [
            normalize_external_id(g)
            for g in groups
            if isinstance(g, str) and normalize_external_id(g).startswith(ORGANIZATION_PREFIX)
        ]
        if org_groups:
            reported = True
            found.extend(org_groups)

    if not reported:
        return None
    normalized = (normalize_external_id(v) for v in found)
    return list(dict.fromkeys(v for v in normalized if v))


class MembershipSyncService:
    def __init__(self, tenants: TenantRepository, memberships: MembershipRepository):
        self.tenants = tenants
        self.memberships = memberships

    async def _unique_slug(self, base: str) -> str:
        slug = base
        for attempt in range(2, MAX_SLUG_ATTEMPTS + 2):
            if await self.tenants.find_by_slug(slug) is None:
                return slug
            slug = f"{base}-{attempt}"
        raise RuntimeError(f"Could not find a free slug for '{base}'")

    async def resolve_tenant(self, external_id: str) -> tuple[Tenant, bool]:
        """Local tenant for ``external_id``, created if missing.

        Returns:
            (tenant, created)
        """
        tenant = await self.tenants.find_by_external_reference_id(external_id)
        if tenant is not None:
            return tenant, False

        slug = await self._unique_slug(slugify(external_id, fallback="org"))
        try:
            tenant = await self.tenants.create(
                name=external_id,
                slug=slug,
                external_reference_id=external_id,
            )
        except IntegrityError:
            # Lost a race with a concurrent login creating the same tenant
            tenant = await self.tenants.find_by_external_reference_id(external_id)
            if tenant is None:
                raise
            return tenant, False
        logger.info(
            "Tenant created from identity provider organization",
            extra={"tenant_id": str(tenant.id), "external_reference_id": external_id},
        )
        return tenant, True

    @log_operation("sync_memberships")
    async def sync(self, user_id: UUID, external_ids: Iterable[str]) -> SyncResult:
        """Make the user's provider-managed memberships exactly ``external_ids``."""
        result = SyncResult()
        with LogContext(user_id=str(user_id)):
            for external_id in dict.fromkeys(normalize_external_id(e) for e in external_ids):
                if not external_id:
                    continue
                tenant, created = await self.resolve_tenant(external_id)
                result.tenant_ids.append(tenant.id)
                if created:
                    result.created_tenants.append(tenant.id)

            diff = await self.memberships.sync_tenants(user_id, result.tenant_ids)
            result.added = diff.added
            result.removed = diff.removed
            result.unchanged = diff.unchanged
            logger.info(
                "Memberships synchronized",
                extra={
                    "added": len(result.added),
                    "removed": len(result.removed),
                    "unchanged": len(result.unchanged),
                },
            )
        return result
