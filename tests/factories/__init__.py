"""Test factories for Galleria models."""

from .album import AlbumFactory, PhotoFactory
from .base import AsyncSQLAlchemyFactory, generate_uuid
from .tenant import TenantFactory, UserTenantFactory
from .user import UserFactory

__all__ = [
    "AlbumFactory",
    "AsyncSQLAlchemyFactory",
    "PhotoFactory",
    "TenantFactory",
    "UserFactory",
    "UserTenantFactory",
    "generate_uuid",
]
