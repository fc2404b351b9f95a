"""Tenant administration routes.

Tenants are global records, so these routes are not scoped by the current
tenant. A signed-in user sees only tenants they belong to and becomes a
member and admin of every tenant they create. Renaming or deleting a tenant
and granting roles in it require the admin role there.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status

from galleria.api.dependencies import ServiceContainer, get_services, require_user
from galleria.api.models import (
    DeletedResponse,
    RolesResponse,
    TenantCreateRequest,
    TenantResponse,
    TenantUpdateRequest,
)
from galleria.db.models import User
from galleria.errors import TenantAccessDeniedError
from galleria.logging_config import get_logger
from galleria.services.role import ROLE_ADMIN
from galleria.services.tenant import slugify
from galleria.tenant.logging import log_tenant_operation

logger = get_logger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


async def _require_member(services: ServiceContainer, user: User, tenant_id: UUID) -> None:
    if not await services.memberships.has_access(user.id, tenant_id):
        raise TenantAccessDeniedError()


async def _require_admin(services: ServiceContainer, user: User, tenant_id: UUID) -> None:
    await _require_member(services, user, tenant_id)
    await services.role_service.require_role(user.id, tenant_id, ROLE_ADMIN)


@router.get("", response_model=List[TenantResponse])
async def list_tenants(
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> List[TenantResponse]:
    tenants = await services.memberships.find_tenants_for_user(user.id)
    return [TenantResponse.model_validate(t) for t in tenants]


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    request: TenantCreateRequest,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> TenantResponse:
    """Create a tenant owned by the caller.

    Responds 409 when the slug is taken and 422 when it is malformed.
    """
    slug = request.slug if request.slug is not None else slugify(request.name)
    tenant = await services.tenant_service.create_for_user(user.id, request.name, slug)
    log_tenant_operation(logger, "create_tenant", created_tenant_id=str(tenant.id))
    return TenantResponse.model_validate(tenant)


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: UUID,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> TenantResponse:
    await _require_member(services, user, tenant_id)
    return TenantResponse.model_validate(await services.tenant_service.get(tenant_id))


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: UUID,
    request: TenantUpdateRequest,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> TenantResponse:
    await _require_admin(services, user, tenant_id)
    tenant = await services.tenant_service.update(
        tenant_id, **request.model_dump(exclude_unset=True)
    )
    return TenantResponse.model_validate(tenant)


@router.delete("/{tenant_id}", response_model=DeletedResponse)
async def delete_tenant(
    tenant_id: UUID,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> DeletedResponse:
    """Delete a tenant with its albums and photos. Admin only."""
    await _require_admin(services, user, tenant_id)
    await services.tenant_service.delete(tenant_id)
    log_tenant_operation(logger, "delete_tenant", deleted_tenant_id=str(tenant_id))
    return DeletedResponse(deleted=True)


@router.get("/{tenant_id}/roles", response_model=RolesResponse)
async def my_roles(
    tenant_id: UUID,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> RolesResponse:
    await _require_member(services, user, tenant_id)
    roles = await services.role_service.role_names_for(user.id, tenant_id)
    return RolesResponse(user_id=user.id, tenant_id=tenant_id, roles=roles)


@router.put("/{tenant_id}/members/{member_id}/roles/{role_name}", response_model=RolesResponse)
async def grant_role(
    tenant_id: UUID,
    member_id: UUID,
    role_name: str,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> RolesResponse:
    """Grant a catalog role to a member of the tenant. Admin only.

    Responds 404 for unknown roles and for users outside the tenant.
    """
    await _require_admin(services, user, tenant_id)
    roles = await services.role_service.grant_to_member(member_id, tenant_id, role_name)
    log_tenant_operation(logger, "grant_role", member_id=str(member_id), role=role_name)
    return RolesResponse(user_id=member_id, tenant_id=tenant_id, roles=roles)


@router.delete("/{tenant_id}/members/{member_id}/roles/{role_name}", response_model=RolesResponse)
async def revoke_role(
    tenant_id: UUID,
    member_id: UUID,
    role_name: str,
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> RolesResponse:
    await _require_admin(services, user, tenant_id)
    await services.role_service.revoke(member_id, tenant_id, role_name)
    log_tenant_operation(logger, "revoke_role", member_id=str(member_id), role=role_name)
    roles = await services.role_service.role_names_for(member_id, tenant_id)
    return RolesResponse(user_id=member_id, tenant_id=tenant_id, roles=roles)
