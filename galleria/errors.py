"""Domain exceptions for Galleria.

These carry an HTTP-equivalent ``status_code`` but no web framework
dependency, so repositories and services can raise them freely. The API
layer renders them (see ``galleria.api.shared.helpers.errors``).
"""

from __future__ import annotations

from typing import Optional


class GalleriaError(Exception):
    """Base class for errors that map onto a client-visible response."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NoActiveContextError(RuntimeError):
    """Raised when request context is read outside any context scope.

    This is a wiring bug (the request entry point did not establish a
    context), never a client error, so it is not a :class:`GalleriaError`.
    """

    def __init__(self, message: str = "No active request context"):
        super().__init__(message)


class TenantContextRequiredError(GalleriaError):
    status_code = 400
    default_message = "Tenant context required for this operation"


class InvalidTenantIdentifierError(GalleriaError):
    status_code = 400
    default_message = "Invalid tenant identifier format"


class AuthenticationRequiredError(GalleriaError):
    status_code = 401
    default_message = "Authentication required"


class TenantAccessDeniedError(GalleriaError):
    status_code = 403
    default_message = "Access denied to tenant"


class RoleRequiredError(TenantAccessDeniedError):
    """Member of the tenant, but without the role the operation needs."""

    default_message = "Insufficient role for this operation"

    def __init__(self, role: Optional[str] = None):
        self.role = role
        super().__init__(f"Role '{role}' required" if role else None)


class NotFoundError(GalleriaError):
    status_code = 404
    default_message = "Resource not found"

    def __init__(self, resource: str = "Resource", resource_id: Optional[object] = None):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ConflictError(GalleriaError):
    status_code = 409
    default_message = "Resource already exists"


class InvalidSlugError(GalleriaError):
    status_code = 422
    default_message = "Slug must be lowercase letters, digits and single hyphens"


class IdentityProviderError(GalleriaError):
    status_code = 502
    default_message = "Authentication failed"


class InvalidOAuthStateError(GalleriaError):
    status_code = 400
    default_message = "Invalid or expired login state"
