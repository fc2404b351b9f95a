"""Tests for the standard error response helpers."""

import pytest

from galleria.api.shared.helpers.errors import (
    ERROR_REGISTRY,
    ErrorCode,
    create_error_response,
    domain_error_response,
    error_code_for,
    get_error_info,
)
from galleria.errors import (
    ConflictError,
    GalleriaError,
    InvalidTenantIdentifierError,
    NotFoundError,
    RoleRequiredError,
    TenantAccessDeniedError,
)


class TestErrorRegistry:
    def test_every_code_registered(self):
        assert set(ERROR_REGISTRY) == set(ErrorCode)

    def test_unknown_fallback(self):
        assert get_error_info(ErrorCode.UNKNOWN).code == ErrorCode.UNKNOWN


class TestErrorCodeFor:
    @pytest.mark.parametrize(
        "exc,code",
        [
            (TenantAccessDeniedError(), ErrorCode.AUTH_TENANT_DENIED),
            (RoleRequiredError("admin"), ErrorCode.AUTH_ROLE_REQUIRED),
            (InvalidTenantIdentifierError(), ErrorCode.TENANT_INVALID_ID),
            (NotFoundError("Album"), ErrorCode.RES_NOT_FOUND),
            (ConflictError("taken"), ErrorCode.RES_ALREADY_EXISTS),
        ],
    )
    def test_known(self, exc, code):
        assert error_code_for(exc) == code

    def test_subclass_uses_parent_code(self):
        class AlbumGone(NotFoundError):
            pass

        assert error_code_for(AlbumGone("Album")) == ErrorCode.RES_NOT_FOUND

    def test_role_error_is_a_forbidden_tenant_error(self):
        exc = RoleRequiredError("admin")

        assert isinstance(exc, TenantAccessDeniedError)
        assert exc.status_code == 403
        assert exc.message == "Role 'admin' required"
        assert domain_error_response(exc)["error_code"] == "ERR_AUTH_005"

    def test_unmapped(self):
        assert error_code_for(GalleriaError("boom")) == ErrorCode.UNKNOWN


class TestResponses:
    def test_create_error_response_defaults_to_registry_message(self):
        body = create_error_response(ErrorCode.TENANT_CONTEXT_REQUIRED)

        assert body["error"] == "tenant_context_required"
        assert body["error_code"] == "ERR_TENANT_001"
        assert body["detail"] == get_error_info(ErrorCode.TENANT_CONTEXT_REQUIRED).message
        assert body["action"]

    def test_domain_error_keeps_message(self):
        body = domain_error_response(NotFoundError("Album", "a1"))

        assert body["error_code"] == "ERR_RES_001"
        assert "Album" in body["detail"]
