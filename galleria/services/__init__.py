"""Business services composed from the repositories."""

from .membership_sync import MembershipSyncService, SyncResult, extract_organizations
from .provisioning import ProvisioningService
from .role import ROLE_ADMIN, ROLE_NAMES, ROLE_USER, ROLE_VIEWER, RoleService
from .tenant import TenantService, slugify, validate_slug
from .tenant_switch import TenantSwitchService
from .user import UserService

__all__ = [
    "MembershipSyncService",
    "ProvisioningService",
    "ROLE_ADMIN",
    "ROLE_NAMES",
    "ROLE_USER",
    "ROLE_VIEWER",
    "RoleService",
    "SyncResult",
    "TenantService",
    "TenantSwitchService",
    "UserService",
    "extract_organizations",
    "slugify",
    "validate_slug",
]
