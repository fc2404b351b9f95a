"""FastAPI dependencies and the per-application service container.

``create_app`` builds one :class:`ServiceContainer` and stores it on
``app.state.services``; middleware and routes read it from there so tests can
swap the database, session store or identity provider per app instance.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request

from galleria.api.auth.oidc import OIDCClient
from galleria.cache.sessions import ServerSession
from galleria.config import GalleriaConfig
from galleria.db.models import User
from galleria.db.repositories import (
    AlbumRepository,
    MembershipRepository,
    PhotoRepository,
    RoleRepository,
    TenantRepository,
    UserRepository,
    UserRoleRepository,
)
from galleria.db.session import Database
from galleria.errors import AuthenticationRequiredError
from galleria.services import (
    MembershipSyncService,
    ProvisioningService,
    RoleService,
    TenantService,
    TenantSwitchService,
    UserService,
)
from galleria.tenant.accessor import default_accessor
from galleria.tenant.claims import build_claims_decoder
from galleria.tenant.resolver import TenantResolver


@dataclass
class ServiceContainer:
    """Repositories and services wired to one database."""

    config: GalleriaConfig
    database: Database
    tenants: TenantRepository
    users: UserRepository
    memberships: MembershipRepository
    albums: AlbumRepository
    photos: PhotoRepository
    roles: RoleRepository
    user_roles: UserRoleRepository
    role_service: RoleService
    tenant_service: TenantService
    user_service: UserService
    provisioning: ProvisioningService
    membership_sync: MembershipSyncService
    tenant_switch: TenantSwitchService
    resolver: TenantResolver
    oidc: Optional[OIDCClient] = None

    @classmethod
    def build(
        cls,
        config: GalleriaConfig,
        database: Database,
        oidc: Optional[OIDCClient] = None,
    ) -> "ServiceContainer":
        tenants = TenantRepository(database)
        users = UserRepository(database)
        memberships = MembershipRepository(database)
        roles = RoleRepository(database)
        user_roles = UserRoleRepository(database)
        role_service = RoleService(
            database,
            roles=roles,
            user_roles=user_roles,
            memberships=memberships,
        )
        tenant_service = TenantService(
            database,
            tenants=tenants,
            memberships=memberships,
            roles=role_service,
        )
        user_service = UserService(users, memberships)
        provisioning = ProvisioningService(tenant_service, user_service)
        resolver = TenantResolver(
            user_service,
            provisioning,
            build_claims_decoder(config.token),
            claim_name=config.tenant.claim_name,
            auto_provision=config.tenant.auto_provision,
        )
        return cls(
            config=config,
            database=database,
            tenants=tenants,
            users=users,
            memberships=memberships,
            albums=AlbumRepository(database),
            photos=PhotoRepository(database),
            roles=roles,
            user_roles=user_roles,
            role_service=role_service,
            tenant_service=tenant_service,
            user_service=user_service,
            provisioning=provisioning,
            membership_sync=MembershipSyncService(tenants, memberships),
            tenant_switch=TenantSwitchService(memberships, user_service),
            resolver=resolver,
            oidc=oidc,
        )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_session(request: Request) -> ServerSession:
    """The request's server session (set by ServerSessionMiddleware)."""
    return request.state.session


def get_current_user(request: Request) -> Optional[User]:
    return getattr(request.state, "user", None)


def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Authenticated user or 401."""
    if user is None:
        raise AuthenticationRequiredError()
    return user


def require_tenant(user: User = Depends(require_user)) -> UUID:
    """Current tenant id or 400 when the request resolved none."""
    return default_accessor.get_tenant_id()
