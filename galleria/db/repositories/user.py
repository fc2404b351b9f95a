"""Repository for users."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update

from galleria.db.models import User
from galleria.db.session import Database


class UserRepository:
    """Lookups and upserts on the global ``users`` table."""

    def __init__(self, database: Database):
        self.db = database

    async def find_by_id(self, user_id: UUID) -> Optional[User]:
        async with self.db.session() as session:
            return await session.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        async with self.db.session() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def find_by_keycloak_id(self, keycloak_user_id: str) -> Optional[User]:
        async with self.db.session() as session:
            result = await session.execute(
                select(User).where(User.keycloak_user_id == keycloak_user_id)
            )
            return result.scalar_one_or_none()

    async def upsert_by_keycloak_id(self, keycloak_user_id: str, email: str) -> User:
        """Create the user for this subject or refresh its email."""
        async with self.db.transaction() as session:
            result = await session.execute(
                select(User).where(User.keycloak_user_id == keycloak_user_id)
            )
            user = result.scalar_one_or_none()
            if user is None:
                user = User(keycloak_user_id=keycloak_user_id, email=email)
                session.add(user)
            elif user.email != email:
                user.email = email
            await session.flush()
            await session.refresh(user)
            return user

    async def update_last_tenant(self, user_id: UUID, tenant_id: Optional[UUID]) -> None:
        async with self.db.session() as session:
            await session.execute(
                update(User).where(User.id == user_id).values(last_tenant_id=tenant_id)
            )
