"""User service: identity upsert and tenant selection hints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from galleria.db.models import User
from galleria.db.repositories import MembershipRepository, UserRepository
from galleria.errors import ConflictError, NotFoundError
from galleria.logging_config import get_logger

logger = get_logger(__name__)


class UserService:
    def __init__(self, users: UserRepository, memberships: MembershipRepository):
        self.users = users
        self.memberships = memberships

    async def get(self, user_id: UUID) -> User:
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def upsert_from_identity(self, keycloak_user_id: str, email: str) -> User:
        """Create or refresh the user for an identity provider subject.

        Raises:
            ConflictError: If ``email`` already belongs to a different subject
        """
        existing = await self.users.find_by_email(email)
        if existing is not None and existing.keycloak_user_id != keycloak_user_id:
            logger.warning(
                "Email already bound to another identity",
                extra={"user_id": str(existing.id)},
            )
            raise ConflictError("Email address is already registered to another account")
        return await self.users.upsert_by_keycloak_id(keycloak_user_id, email)

    async def determine_current_tenant(self, user: User) -> Optional[UUID]:
        """Tenant to select for a user without a current selection.

        The last used tenant wins if the user is still a member of it;
        otherwise the oldest membership. None when the user has none.
        """
        tenant_ids = await self.memberships.find_tenant_ids_for_user(user.id)
        if not tenant_ids:
            return None
        if user.last_tenant_id is not None and user.last_tenant_id in tenant_ids:
            return user.last_tenant_id
        return tenant_ids[0]

    async def update_last_tenant(self, user_id: UUID, tenant_id: Optional[UUID]) -> None:
        await self.users.update_last_tenant(user_id, tenant_id)
