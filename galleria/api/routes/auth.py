"""Browser login, logout and tenant selection routes.

Login is a Keycloak authorization-code flow. The callback keeps the user's
memberships in line with the organizations Keycloak reports, provisions a
personal tenant for users without any, and then selects the current tenant
before issuing a fresh session id.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse

from galleria.api.auth.oidc import OIDCClient, new_state
from galleria.api.dependencies import (
    ServiceContainer,
    get_current_user,
    get_services,
    get_session,
    require_user,
)
from galleria.api.models import (
    MeResponse,
    SwitchTenantRequest,
    SwitchTenantResponse,
    TenantResponse,
    UserResponse,
)
from galleria.cache.sessions import ServerSession
from galleria.db.models import User
from galleria.errors import IdentityProviderError, InvalidOAuthStateError
from galleria.logging_config import get_logger
from galleria.tenant.context import get_current_tenant_id, update_context
from galleria.tenant.logging import log_tenant_operation

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _oidc(services: ServiceContainer) -> OIDCClient:
    if services.oidc is None:
        raise IdentityProviderError("Login is not configured")
    return services.oidc


def _safe_return_to(value: Optional[str]) -> str:
    """Only same-site absolute paths are allowed as post-login targets."""
    if not value or not value.startswith("/") or value.startswith("//"):
        return "/"
    return value


@router.get("/login")
async def login(
    return_to: Optional[str] = Query(default=None, alias="returnTo"),
    session: ServerSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> RedirectResponse:
    """Start the Keycloak login and remember where to come back to."""
    oidc = _oidc(services)
    state, nonce = new_state(), new_state()
    session.update(oauth_state=state, oauth_nonce=nonce, return_to=_safe_return_to(return_to))
    await session.save()
    return RedirectResponse(await oidc.authorization_url(state, nonce), status_code=302)


@router.get("/callback")
async def callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: ServerSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> RedirectResponse:
    """Finish login.

    Raises:
        InvalidOAuthStateError: If the state parameter does not match the session
        IdentityProviderError: If Keycloak reports an error or the exchange fails
    """
    oidc = _oidc(services)
    if error:
        logger.warning("Identity provider returned an error", extra={"error": error})
        raise IdentityProviderError(f"Login failed: {error}")
    if not state or not session.oauth_state or state != session.oauth_state:
        raise InvalidOAuthStateError()
    if not code:
        raise IdentityProviderError("Missing authorization code")

    identity = await oidc.handle_callback(code, session.oauth_nonce)
    user = await services.user_service.upsert_from_identity(identity.subject, identity.email)
    update_context(user_id=user.id)

    if identity.organizations is not None:
        await services.membership_sync.sync(user.id, identity.organizations)

    tenant_id = await services.user_service.determine_current_tenant(user)
    if tenant_id is None:
        tenant = await services.provisioning.provision_for_user(user)
        tenant_id = tenant.id

    return_to = _safe_return_to(session.return_to)
    await session.regenerate()
    session.update(
        user_id=user.id,
        current_tenant_id=tenant_id,
        oauth_state=None,
        oauth_nonce=None,
        return_to=None,
    )
    await session.save()
    await services.user_service.update_last_tenant(user.id, tenant_id)
    update_context(tenant_id=tenant_id)

    log_tenant_operation(logger, "login")
    return RedirectResponse(return_to, status_code=302)


@router.get("/logout")
async def logout(
    session: ServerSession = Depends(get_session),
    services: ServiceContainer = Depends(get_services),
) -> RedirectResponse:
    await session.destroy()
    if services.oidc is None:
        return RedirectResponse("/", status_code=302)
    target = services.config.oidc.public_url or "/"
    return RedirectResponse(await services.oidc.logout_url(target), status_code=302)


@router.get("/me", response_model=MeResponse)
async def me(
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> MeResponse:
    tenants = await services.memberships.find_tenants_for_user(user.id)
    return MeResponse(
        user=UserResponse.model_validate(user),
        current_tenant_id=get_current_tenant_id(),
        tenants=[TenantResponse.model_validate(t) for t in tenants],
    )


@router.get("/tenants", response_model=List[TenantResponse])
async def list_my_tenants(
    user: User = Depends(require_user),
    services: ServiceContainer = Depends(get_services),
) -> List[TenantResponse]:
    """Tenants the signed-in user is a member of."""
    tenants = await services.memberships.find_tenants_for_user(user.id)
    return [TenantResponse.model_validate(t) for t in tenants]


@router.put("/tenant", response_model=SwitchTenantResponse)
async def switch_tenant(
    request: SwitchTenantRequest,
    session: ServerSession = Depends(get_session),
    user: Optional[User] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
) -> SwitchTenantResponse:
    """Make another of the user's tenants current.

    Responds 401 without a signed-in user and 403 when the user is not a
    member of the requested tenant; in both cases the session is unchanged.
    """
    tenant_id = await services.tenant_switch.switch(session, user, request.tenant_id)
    return SwitchTenantResponse(current_tenant_id=tenant_id)
