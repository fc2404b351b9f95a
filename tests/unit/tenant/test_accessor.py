"""Unit tests for the tenant accessor used by tenant-scoped repositories."""

from uuid import uuid4

import pytest

from galleria.errors import (
    AuthenticationRequiredError,
    NoActiveContextError,
    TenantContextRequiredError,
)
from galleria.tenant.accessor import FixedTenantAccessor, TenantAccessor
from galleria.tenant.context import RequestContextScope


class TestTenantAccessor:
    def setup_method(self):
        self.accessor = TenantAccessor()

    def test_returns_context_tenant(self):
        tenant_id = uuid4()
        with RequestContextScope(tenant_id=tenant_id):
            assert self.accessor.get_tenant_id() == tenant_id
            assert self.accessor.has_tenant_context()

    def test_missing_tenant_is_client_error(self):
        with RequestContextScope(user_id=uuid4()):
            with pytest.raises(TenantContextRequiredError) as exc_info:
                self.accessor.get_tenant_id()
            assert not self.accessor.has_tenant_context()

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Tenant context required for this operation"

    def test_missing_context_is_wiring_error(self):
        with pytest.raises(NoActiveContextError):
            self.accessor.get_tenant_id()

    def test_require_user_id(self):
        with RequestContextScope(tenant_id=uuid4()):
            assert self.accessor.get_user_id() is None
            with pytest.raises(AuthenticationRequiredError):
                self.accessor.require_user_id()


class TestFixedTenantAccessor:
    def test_fixed_ids(self):
        tenant_id, user_id = uuid4(), uuid4()
        accessor = FixedTenantAccessor(tenant_id, user_id)

        assert accessor.get_tenant_id() == tenant_id
        assert accessor.require_user_id() == user_id

    def test_no_tenant(self):
        accessor = FixedTenantAccessor(None)

        assert not accessor.has_tenant_context()
        with pytest.raises(TenantContextRequiredError):
            accessor.get_tenant_id()
