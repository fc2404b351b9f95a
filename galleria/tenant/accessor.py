"""Tenant accessor injected into tenant-scoped repositories.

Row level security scopes reads, updates and deletes on its own; only
inserts need the application to say which tenant a new row belongs to.
Repositories receive a :class:`TenantAccessor` rather than inheriting from a
tenant-aware base class.
"""

from typing import Optional, Protocol
from uuid import UUID

from galleria.errors import AuthenticationRequiredError, TenantContextRequiredError
from galleria.tenant.context import get_context


class TenantAccessorProtocol(Protocol):
    def get_tenant_id(self) -> UUID: ...

    def has_tenant_context(self) -> bool: ...

    def get_user_id(self) -> Optional[UUID]: ...

    def require_user_id(self) -> UUID: ...


class TenantAccessor:
    """Reads the acting tenant and user from the active request context.

    A missing context raises ``NoActiveContextError`` (wiring bug); a
    context without a tenant raises ``TenantContextRequiredError`` (client
    error, HTTP 400).
    """

    def get_tenant_id(self) -> UUID:
        tenant_id = get_context().tenant_id
        if tenant_id is None:
            raise TenantContextRequiredError()
        return tenant_id

    def has_tenant_context(self) -> bool:
        return get_context().tenant_id is not None

    def get_user_id(self) -> Optional[UUID]:
        return get_context().user_id

    def require_user_id(self) -> UUID:
        user_id = get_context().user_id
        if user_id is None:
            raise AuthenticationRequiredError()
        return user_id


class FixedTenantAccessor:
    """Accessor pinned to explicit ids, for scripts and tests."""

    def __init__(self, tenant_id: Optional[UUID], user_id: Optional[UUID] = None):
        self.tenant_id = tenant_id
        self.user_id = user_id

    def get_tenant_id(self) -> UUID:
        if self.tenant_id is None:
            raise TenantContextRequiredError()
        return self.tenant_id

    def has_tenant_context(self) -> bool:
        return self.tenant_id is not None

    def get_user_id(self) -> Optional[UUID]:
        return self.user_id

    def require_user_id(self) -> UUID:
        if self.user_id is None:
            raise AuthenticationRequiredError()
        return self.user_id


default_accessor = TenantAccessor()
