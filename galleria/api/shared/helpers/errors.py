"""Error handling utilities for API responses.

Domain exceptions (``galleria.errors``) are rendered with a stable,
machine-readable error code plus a user-facing action. Internal details are
logged, never returned.

Response format:
    {
        "error": "auth_tenant_denied",
        "detail": "Access denied to tenant",
        "error_code": "ERR_AUTH_004",
        "action": "Switch to a tenant you are a member of."
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Type

from fastapi import status

from galleria.errors import (
    AuthenticationRequiredError,
    ConflictError,
    GalleriaError,
    IdentityProviderError,
    InvalidOAuthStateError,
    InvalidSlugError,
    InvalidTenantIdentifierError,
    NotFoundError,
    RoleRequiredError,
    TenantAccessDeniedError,
    TenantContextRequiredError,
)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses.

    Format: ERR_{CATEGORY}_{NUMBER}
    Categories:
    - AUTH: Authentication and authorization
    - TENANT: Tenant context
    - VAL: Validation
    - RES: Resource (not found, conflict)
    - IDP: Identity provider
    - SYS: System/server errors
    """

    AUTH_MISSING = "ERR_AUTH_001"
    AUTH_INVALID_STATE = "ERR_AUTH_002"
    AUTH_TENANT_DENIED = "ERR_AUTH_004"
    AUTH_ROLE_REQUIRED = "ERR_AUTH_005"

    TENANT_CONTEXT_REQUIRED = "ERR_TENANT_001"
    TENANT_INVALID_ID = "ERR_TENANT_002"

    VAL_INVALID_FORMAT = "ERR_VAL_002"
    VAL_INVALID_SLUG = "ERR_VAL_005"

    RES_NOT_FOUND = "ERR_RES_001"
    RES_ALREADY_EXISTS = "ERR_RES_002"

    IDP_FAILED = "ERR_IDP_001"

    SYS_INTERNAL_ERROR = "ERR_SYS_001"
    SYS_DATABASE_ERROR = "ERR_SYS_003"

    UNKNOWN = "ERR_UNKNOWN"


@dataclass
class ErrorInfo:
    """Complete error information for API responses."""

    code: ErrorCode
    message: str
    action: str
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


ERROR_REGISTRY: Dict[ErrorCode, ErrorInfo] = {
    ErrorCode.AUTH_MISSING: ErrorInfo(
        code=ErrorCode.AUTH_MISSING,
        message="Authentication required.",
        action="Please sign in to access this resource.",
        status_code=status.HTTP_401_UNAUTHORIZED,
    ),
    ErrorCode.AUTH_INVALID_STATE: ErrorInfo(
        code=ErrorCode.AUTH_INVALID_STATE,
        message="Invalid or expired login state.",
        action="Start the sign-in again.",
        status_code=status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.AUTH_TENANT_DENIED: ErrorInfo(
        code=ErrorCode.AUTH_TENANT_DENIED,
        message="Access denied to tenant.",
        action="Switch to a tenant you are a member of.",
        status_code=status.HTTP_403_FORBIDDEN,
    ),
    ErrorCode.AUTH_ROLE_REQUIRED: ErrorInfo(
        code=ErrorCode.AUTH_ROLE_REQUIRED,
        message="Insufficient role for this operation.",
        action="Ask a tenant admin to grant you the required role.",
        status_code=status.HTTP_403_FORBIDDEN,
    ),
    ErrorCode.TENANT_CONTEXT_REQUIRED: ErrorInfo(
        code=ErrorCode.TENANT_CONTEXT_REQUIRED,
        message="Tenant context required for this operation.",
        action="Sign in and select a tenant, or send a token with a tenant claim.",
        status_code=status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.TENANT_INVALID_ID: ErrorInfo(
        code=ErrorCode.TENANT_INVALID_ID,
        message="Invalid tenant identifier format.",
        action="Tenant identifiers are UUIDs.",
        status_code=status.HTTP_400_BAD_REQUEST,
    ),
    ErrorCode.VAL_INVALID_FORMAT: ErrorInfo(
        code=ErrorCode.VAL_INVALID_FORMAT,
        message="Invalid input format.",
        action="Please check the format and try again.",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    ),
    ErrorCode.VAL_INVALID_SLUG: ErrorInfo(
        code=ErrorCode.VAL_INVALID_SLUG,
        message="Slug must be lowercase letters, digits and single hyphens.",
        action="Use a slug such as 'my-team'.",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
    ),
    ErrorCode.RES_NOT_FOUND: ErrorInfo(
        code=ErrorCode.RES_NOT_FOUND,
        message="The requested resource was not found.",
        action="It may have been deleted or you may not have access to it.",
        status_code=status.HTTP_404_NOT_FOUND,
    ),
    ErrorCode.RES_ALREADY_EXISTS: ErrorInfo(
        code=ErrorCode.RES_ALREADY_EXISTS,
        message="A resource with this identifier already exists.",
        action="Use a different name or update the existing resource.",
        status_code=status.HTTP_409_CONFLICT,
    ),
    ErrorCode.IDP_FAILED: ErrorInfo(
        code=ErrorCode.IDP_FAILED,
        message="Authentication failed.",
        action="Please try signing in again in a moment.",
        status_code=status.HTTP_502_BAD_GATEWAY,
    ),
    ErrorCode.SYS_INTERNAL_ERROR: ErrorInfo(
        code=ErrorCode.SYS_INTERNAL_ERROR,
        message="An internal error occurred.",
        action="We've been notified. Please try again.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
    ErrorCode.SYS_DATABASE_ERROR: ErrorInfo(
        code=ErrorCode.SYS_DATABASE_ERROR,
        message="Database error occurred.",
        action="We've been notified. Please try again.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
    ErrorCode.UNKNOWN: ErrorInfo(
        code=ErrorCode.UNKNOWN,
        message="An unexpected error occurred.",
        action="Please try again. Contact support if the problem persists.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    ),
}


_DOMAIN_ERROR_CODES: Dict[Type[GalleriaError], ErrorCode] = {
    AuthenticationRequiredError: ErrorCode.AUTH_MISSING,
    InvalidOAuthStateError: ErrorCode.AUTH_INVALID_STATE,
    TenantAccessDeniedError: ErrorCode.AUTH_TENANT_DENIED,
    RoleRequiredError: ErrorCode.AUTH_ROLE_REQUIRED,
    TenantContextRequiredError: ErrorCode.TENANT_CONTEXT_REQUIRED,
    InvalidTenantIdentifierError: ErrorCode.TENANT_INVALID_ID,
    InvalidSlugError: ErrorCode.VAL_INVALID_SLUG,
    NotFoundError: ErrorCode.RES_NOT_FOUND,
    ConflictError: ErrorCode.RES_ALREADY_EXISTS,
    IdentityProviderError: ErrorCode.IDP_FAILED,
}


def get_error_info(error_code: ErrorCode) -> ErrorInfo:
    """Get error information for a given error code."""
    return ERROR_REGISTRY.get(error_code, ERROR_REGISTRY[ErrorCode.UNKNOWN])


def error_code_for(exc: GalleriaError) -> ErrorCode:
    """Error code for a domain exception (most specific class wins)."""
    for cls in type(exc).__mro__:
        code = _DOMAIN_ERROR_CODES.get(cls)  # type: ignore[arg-type]
        if code is not None:
            return code
    return ErrorCode.UNKNOWN


def create_error_response(
    error_code: ErrorCode,
    detail: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a standardized error response dict."""
    info = get_error_info(error_code)
    return {
        "error": error_code.name.lower(),
        "detail": detail or info.message,
        "error_code": error_code.value,
        "action": info.action,
    }


def domain_error_response(exc: GalleriaError) -> Dict[str, Any]:
    """Response body for a domain exception, keeping its own message."""
    return create_error_response(error_code_for(exc), detail=exc.message)
