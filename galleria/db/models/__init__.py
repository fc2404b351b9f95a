"""SQLAlchemy models for Galleria.

Global tables (no row level security):
- Tenant: isolated customer organizations
- User: Keycloak-authenticated principals
- Role: code-defined role catalog

Scoped tables (row level security):
- UserTenant: user-to-tenant access grants (visible by user or tenant)
- UserRole: per-tenant role assignments (visible by tenant)
- Album, Photo: gallery content (visible by tenant)
"""

from .album import Album, ContentStatus, Photo
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from .membership import UserTenant
from .role import Role, UserRole
from .tenant import SLUG_PATTERN, Tenant
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Tenant",
    "SLUG_PATTERN",
    "User",
    "UserTenant",
    "Role",
    "UserRole",
    "Album",
    "Photo",
    "ContentStatus",
]
