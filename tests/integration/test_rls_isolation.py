"""Tenant isolation enforced by PostgreSQL row level security.

These run only with a PostgreSQL ``DATABASE_URL``; the repositories issue
no tenant filters of their own, so every assertion here is the database
policies at work.
"""

import asyncio
from types import SimpleNamespace

import httpx
import jwt
import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from galleria.api.app import create_app
from galleria.cache.sessions import InMemorySessionStore
from galleria.config import GalleriaConfig
from galleria.db.repositories import (
    AlbumRepository,
    MembershipRepository,
    PhotoRepository,
    TenantRepository,
    UserRepository,
    UserRoleRepository,
)
from galleria.errors import TenantContextRequiredError
from galleria.services import RoleService, TenantService
from galleria.tenant.context import RequestContext, RequestContextScope

pytestmark = pytest.mark.integration

INSERT_ALBUM_SQL = text(
    "INSERT INTO albums (id, tenant_id, created_by_user_id, name, status, is_deleted) "
    "VALUES (gen_random_uuid(), :tenant, :user, 'Smuggled', 'draft', false)"
)


@pytest.fixture
async def world(pg_database):
    """Two tenants, one member each, plus a user who belongs to both."""
    tenants = TenantRepository(pg_database)
    users = UserRepository(pg_database)
    memberships = MembershipRepository(pg_database)

    acme = await tenants.create("Acme", "acme")
    globex = await tenants.create("Globex", "globex")
    alice = await users.upsert_by_keycloak_id("kc-alice", "alice@acme.test")
    bob = await users.upsert_by_keycloak_id("kc-bob", "bob@globex.test")
    carol = await users.upsert_by_keycloak_id("kc-carol", "carol@both.test")
    await memberships.add(alice.id, acme.id)
    await memberships.add(bob.id, globex.id)
    await memberships.add(carol.id, acme.id)
    await memberships.add(carol.id, globex.id)

    return SimpleNamespace(
        db=pg_database,
        albums=AlbumRepository(pg_database),
        photos=PhotoRepository(pg_database),
        memberships=memberships,
        acme=acme,
        globex=globex,
        alice=alice,
        bob=bob,
        carol=carol,
    )


def as_member(user, tenant=None) -> RequestContextScope:
    return RequestContextScope(
        RequestContext(user_id=user.id, tenant_id=tenant.id if tenant else None)
    )


def bearer(tenant_id) -> dict:
    token = jwt.encode({"tenant_id": str(tenant_id)}, "unchecked", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


class TestTenantIsolation:
    @pytest.mark.asyncio
    async def test_albums_visible_only_to_their_tenant(self, world):
        async with as_member(world.alice, world.acme):
            acme_album = await world.albums.create("Acme launch")
        async with as_member(world.bob, world.globex):
            globex_album = await world.albums.create("Globex retreat")

        async with as_member(world.alice, world.acme):
            assert [a.id for a in await world.albums.list()] == [acme_album.id]
            assert await world.albums.get(globex_album.id) is None
        async with as_member(world.bob, world.globex):
            assert [a.id for a in await world.albums.list()] == [globex_album.id]

    @pytest.mark.asyncio
    async def test_cross_tenant_writes_affect_nothing(self, world):
        async with as_member(world.alice, world.acme):
            album = await world.albums.create("Private")

        async with as_member(world.bob, world.globex):
            assert await world.albums.update(album.id, name="Hijacked") is None
            assert await world.albums.soft_delete(album.id) is False

        async with as_member(world.alice, world.acme):
            unchanged = await world.albums.get(album.id)
            assert unchanged.name == "Private"
            assert unchanged.is_deleted is False

    @pytest.mark.asyncio
    async def test_photos_follow_the_same_policy(self, world):
        async with as_member(world.alice, world.acme):
            album = await world.albums.create("Photos")
            photo = await world.photos.create(album_id=album.id, title="One", url="https://x/1.jpg")

        async with as_member(world.bob, world.globex):
            assert await world.photos.list() == []
            assert await world.photos.get(photo.id) is None

    @pytest.mark.asyncio
    async def test_member_of_both_sees_what_the_current_tenant_holds(self, world):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Acme only")
        async with as_member(world.bob, world.globex):
            await world.albums.create("Globex only")

        async with as_member(world.carol, world.acme):
            assert [a.name for a in await world.albums.list()] == ["Acme only"]
        async with as_member(world.carol, world.globex):
            assert [a.name for a in await world.albums.list()] == ["Globex only"]


class TestNoTenant:
    @pytest.mark.asyncio
    async def test_no_context_sees_no_rows(self, world):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Hidden")

        async with world.db.session() as session:
            count = (await session.execute(text("SELECT count(*) FROM albums"))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_context_without_tenant_sees_no_rows(self, world):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Hidden")

        async with as_member(world.alice):
            async with world.db.session() as session:
                count = (await session.execute(text("SELECT count(*) FROM albums"))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_repository_requires_tenant(self, world):
        async with as_member(world.alice):
            with pytest.raises(TenantContextRequiredError):
                await world.albums.create("Nowhere")

    @pytest.mark.asyncio
    async def test_insert_for_another_tenant_is_rejected(self, world):
        async with as_member(world.alice, world.acme):
            with pytest.raises(DBAPIError):
                async with world.db.session() as session:
                    await session.execute(
                        INSERT_ALBUM_SQL, {"tenant": world.globex.id, "user": world.alice.id}
                    )

        # Same statement for the current tenant passes the check
        async with as_member(world.alice, world.acme):
            async with world.db.session() as session:
                await session.execute(INSERT_ALBUM_SQL, {"tenant": world.acme.id, "user": world.alice.id})
            assert [a.name for a in await world.albums.list()] == ["Smuggled"]


class TestMemberships:
    @pytest.mark.asyncio
    async def test_own_memberships_visible_before_tenant_selected(self, world):
        async with as_member(world.carol):
            tenant_ids = await world.memberships.find_tenant_ids_for_user(world.carol.id)

        assert sorted(tenant_ids) == sorted([world.acme.id, world.globex.id])

    @pytest.mark.asyncio
    async def test_other_users_memberships_hidden(self, world):
        async with as_member(world.alice):
            assert await world.memberships.find_tenant_ids_for_user(world.bob.id) == []


class TestRoles:
    @pytest.mark.asyncio
    async def test_owner_role_written_into_new_tenant(self, world):
        roles = RoleService(world.db)
        tenant_service = TenantService(world.db, roles=roles)

        async with as_member(world.alice, world.acme):
            team = await tenant_service.create_for_user(world.alice.id, "Team", "team")
            # The active tenant's policy hides the new tenant's assignments
            assert await UserRoleRepository(world.db).find_role_names(world.alice.id, team.id) == []
            assert await roles.role_names_for(world.alice.id, team.id) == ["admin"]

    @pytest.mark.asyncio
    async def test_assignments_isolated_by_tenant(self, world):
        roles = RoleService(world.db)
        await roles.seed_roles()
        await roles.assign(world.carol.id, world.acme.id, "admin")

        async with as_member(world.carol, world.globex):
            async with world.db.session() as session:
                count = (await session.execute(text("SELECT count(*) FROM user_roles"))).scalar_one()
        assert count == 0

        async with as_member(world.carol, world.acme):
            assert await UserRoleRepository(world.db).find_role_names(world.carol.id, world.acme.id) == ["admin"]


class TestMembershipSyncOnPostgres:
    @pytest.mark.asyncio
    async def test_sync_keeps_tenants_without_external_reference(self, world):
        async with as_member(world.carol):
            diff = await world.memberships.sync_tenants(world.carol.id, [])
            remaining = await world.memberships.find_tenant_ids_for_user(world.carol.id)

        assert diff.removed == []
        assert sorted(remaining) == sorted([world.acme.id, world.globex.id])


class TestConnectionReuse:
    @pytest.mark.asyncio
    async def test_pooled_connections_never_leak_a_tenant(self, world):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Acme")

        # More checkouts than pool slots, alternating tenants
        for _ in range(3):
            async with as_member(world.bob, world.globex):
                assert await world.albums.list() == []
            async with as_member(world.alice, world.acme):
                assert len(await world.albums.list()) == 1
        async with world.db.session() as session:
            assert (await session.execute(text("SELECT count(*) FROM albums"))).scalar_one() == 0

    @pytest.mark.asyncio
    async def test_concurrent_contexts_stay_isolated(self, world):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Acme")
        async with as_member(world.bob, world.globex):
            await world.albums.create("Globex")

        async def names(user, tenant):
            async with as_member(user, tenant):
                await asyncio.sleep(0)
                return [a.name for a in await world.albums.list()]

        results = await asyncio.gather(
            *[names(world.alice, world.acme) for _ in range(5)],
            *[names(world.bob, world.globex) for _ in range(5)],
        )

        assert results == [["Acme"]] * 5 + [["Globex"]] * 5


class TestHttpFailClosed:
    """The same guarantees seen through the API."""

    @pytest.fixture
    async def client(self, world):
        app = create_app(
            config=GalleriaConfig(),
            database=world.db,
            session_store=InMemorySessionStore(),
        )
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
            yield c

    @pytest.mark.asyncio
    async def test_anonymous_list_is_empty(self, world, client):
        async with as_member(world.alice, world.acme):
            await world.albums.create("Acme")

        response = await client.get("/api/albums")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_bearer_tenant_lists_only_its_albums(self, world, client):
        async with as_member(world.alice, world.acme):
            acme_album = await world.albums.create("Acme")
        async with as_member(world.bob, world.globex):
            await world.albums.create("Globex")

        response = await client.get("/api/albums", headers=bearer(world.acme.id))

        assert [a["id"] for a in response.json()] == [str(acme_album.id)]

    @pytest.mark.asyncio
    async def test_other_tenants_album_is_not_found(self, world, client):
        async with as_member(world.alice, world.acme):
            album = await world.albums.create("Acme")

        response = await client.get(f"/api/albums/{album.id}", headers=bearer(world.globex.id))

        assert response.status_code == 404
