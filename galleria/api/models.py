"""Pydantic models for Galleria API requests and responses.

Wire field names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

StatusLiteral = Literal["draft", "published", "archived"]


class CamelModel(BaseModel):
    """Base model that serializes with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str = Field(..., description="Error name")
    detail: Optional[str] = Field(default=None, description="Detailed error information")
    error_code: Optional[str] = Field(default=None, description="Error code for client handling")
    action: Optional[str] = Field(default=None, description="What the client can do about it")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "auth_tenant_denied",
                "detail": "Access denied to tenant",
                "error_code": "ERR_AUTH_004",
                "action": "Switch to a tenant you are a member of.",
            }
        }
    )


# Tenant selection


class SwitchTenantRequest(CamelModel):
    tenant_id: UUID = Field(..., description="Tenant to make current")

    model_config = ConfigDict(
        json_schema_extra={"example": {"tenantId": "6f1c2a7e-7f7c-4b0a-9a55-0d3d3d7b2a11"}}
    )


class SwitchTenantResponse(CamelModel):
    current_tenant_id: UUID


# Tenants


class TenantResponse(CamelModel):
    id: UUID
    name: str
    slug: str
    external_reference_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TenantCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(
        default=None,
        max_length=255,
        description="URL slug; derived from the name when omitted",
    )


class TenantUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, max_length=255)


class DeletedResponse(CamelModel):
    deleted: bool = True


class RolesResponse(CamelModel):
    """Role names a user holds in one tenant."""

    user_id: UUID
    tenant_id: UUID
    roles: List[str] = Field(default_factory=list)


# Users


class UserResponse(CamelModel):
    id: UUID
    email: str
    last_tenant_id: Optional[UUID] = None


class MeResponse(CamelModel):
    """The signed-in user with their tenant selection."""

    user: UserResponse
    current_tenant_id: Optional[UUID] = None
    tenants: List[TenantResponse] = Field(default_factory=list)


# Albums and photos


class PhotoResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    album_id: UUID
    title: str
    description: Optional[str] = None
    url: str
    thumbnail_url: Optional[str] = None
    status: str
    created_by_user_id: UUID
    is_deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PhotoCreateRequest(CamelModel):
    album_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    status: StatusLiteral = "draft"


class AlbumPhotoCreateRequest(CamelModel):
    """Photo payload for ``POST /api/albums/{id}/photos`` (album from the path)."""

    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    status: StatusLiteral = "draft"


class PhotoUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    url: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    status: Optional[StatusLiteral] = None


class AlbumResponse(CamelModel):
    id: UUID
    tenant_id: UUID
    name: str
    description: Optional[str] = None
    cover_photo_url: Optional[str] = None
    status: str
    created_by_user_id: UUID
    is_deleted: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AlbumWithPhotosResponse(AlbumResponse):
    photos: List[PhotoResponse] = Field(default_factory=list)


class AlbumCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    cover_photo_url: Optional[str] = None
    status: StatusLiteral = "draft"


class AlbumUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    cover_photo_url: Optional[str] = None
    status: Optional[StatusLiteral] = None


# Meta


class MetaResponse(CamelModel):
    name: str
    version: str
    environment: str
    routes: List[str] = Field(default_factory=list)
