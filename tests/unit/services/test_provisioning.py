"""Tests for automatic personal tenant provisioning."""

import pytest

from galleria.db.repositories import MembershipRepository, TenantRepository, UserRepository
from galleria.services import ProvisioningService, TenantService, UserService
from galleria.services.provisioning import email_local_part


@pytest.fixture
def services(database):
    tenants = TenantRepository(database)
    users = UserRepository(database)
    memberships = MembershipRepository(database)
    tenant_service = TenantService(database, tenants=tenants, memberships=memberships)
    user_service = UserService(users, memberships)
    provisioning = ProvisioningService(tenant_service, user_service, clock=lambda: 1718000000.0)
    return provisioning, user_service, users, memberships


class TestProvisioning:
    def test_email_local_part(self):
        assert email_local_part("alice.smith@example.com") == "alice.smith"

    @pytest.mark.asyncio
    async def test_provisions_personal_tenant(self, services):
        provisioning, user_service, users, memberships = services
        user = await users.upsert_by_keycloak_id("kc-alice", "Alice.Smith@example.com")

        tenant = await provisioning.provision_for_user(user)

        assert tenant.name == "Alice.Smith's Organization"
        assert tenant.slug == "alice-smith-1718000000000"
        assert await memberships.has_access(user.id, tenant.id)
        assert user.last_tenant_id == tenant.id
        assert (await users.find_by_id(user.id)).last_tenant_id == tenant.id
        assert await user_service.determine_current_tenant(user) == tenant.id

    @pytest.mark.asyncio
    async def test_symbol_only_local_part_gets_fallback_slug(self, services):
        provisioning, _, users, _ = services
        user = await users.upsert_by_keycloak_id("kc-x", "___@example.com")

        assert provisioning.tenant_slug_for(user) == "user-1718000000000"
