"""Unit tests for the request context and tenant resolution middleware."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from galleria.api.shared.middleware import RequestContextMiddleware, TenantResolutionMiddleware
from galleria.errors import InvalidTenantIdentifierError
from galleria.tenant.context import get_context, get_current_tenant_id, update_context


def _make_app(resolve):
    app = FastAPI()
    app.state.services = SimpleNamespace(resolver=SimpleNamespace(resolve=resolve))
    app.state.marker = "shared-state"

    app.add_middleware(TenantResolutionMiddleware)
    app.add_middleware(RequestContextMiddleware)

    @app.get("/api/whoami")
    async def whoami():
        ctx = get_context()
        return {
            "tenant_id": str(ctx.tenant_id) if ctx.tenant_id else None,
            "marker": ctx.app_state.marker,
        }

    @app.get("/health")
    async def health():
        return {"tenant_id": get_current_tenant_id()}

    return app


class TestTenantResolutionMiddleware:
    def test_resolved_tenant_visible_to_handler(self):
        tenant_id = uuid4()

        async def resolve(authorization, session, user):
            update_context(tenant_id=tenant_id)
            return tenant_id

        client = TestClient(_make_app(resolve))
        response = client.get("/api/whoami", headers={"Authorization": "Bearer x"})

        assert response.status_code == 200
        assert response.json() == {"tenant_id": str(tenant_id), "marker": "shared-state"}
        assert response.headers["X-Tenant-ID"] == str(tenant_id)

    def test_passes_authorization_header(self):
        resolve = AsyncMock(return_value=None)

        client = TestClient(_make_app(resolve))
        client.get("/api/whoami", headers={"Authorization": "Bearer abc"})

        authorization, session, user = resolve.call_args.args
        assert authorization == "Bearer abc"
        assert session is None
        assert user is None

    def test_malformed_tenant_identifier_returns_400(self):
        resolve = AsyncMock(side_effect=InvalidTenantIdentifierError())

        client = TestClient(_make_app(resolve))
        response = client.get("/api/whoami")

        assert response.status_code == 400
        body = response.json()
        assert body["detail"] == "Invalid tenant identifier format"
        assert body["error_code"] == "ERR_TENANT_002"

    def test_skip_paths_do_not_resolve(self):
        resolve = AsyncMock(return_value=uuid4())

        client = TestClient(_make_app(resolve))
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"tenant_id": None}
        resolve.assert_not_called()

    def test_requests_do_not_share_context(self):
        tenants = iter([uuid4(), None])

        async def resolve(authorization, session, user):
            tenant_id = next(tenants)
            if tenant_id:
                update_context(tenant_id=tenant_id)
            return tenant_id

        client = TestClient(_make_app(resolve))
        first = client.get("/api/whoami").json()
        second = client.get("/api/whoami").json()

        assert first["tenant_id"] is not None
        assert second["tenant_id"] is None

    @pytest.mark.parametrize("path", ["/docs", "/auth/login", "/auth/callback"])
    def test_default_skip_paths(self, path):
        middleware = TenantResolutionMiddleware(FastAPI())
        assert any(path.startswith(p) for p in middleware.skip_paths)
