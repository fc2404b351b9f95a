"""Repositories over the Galleria models."""

from .album import AlbumRepository, PhotoRepository
from .membership import MembershipDiff, MembershipRepository
from .role import RoleRepository, UserRoleRepository
from .tenant import TenantRepository
from .user import UserRepository

__all__ = [
    "AlbumRepository",
    "PhotoRepository",
    "MembershipDiff",
    "MembershipRepository",
    "RoleRepository",
    "UserRoleRepository",
    "TenantRepository",
    "UserRepository",
]
