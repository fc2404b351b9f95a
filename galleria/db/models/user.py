"""User model for Keycloak-authenticated principals."""

from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, generate_repr

if TYPE_CHECKING:
    from .membership import UserTenant


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """User model representing an authenticated Keycloak subject.

    Attributes:
        id: UUID primary key
        email: User's email address (unique)
        keycloak_user_id: Subject identifier from Keycloak (unique)
        last_tenant_id: Tenant used most recently; a hint for auto-selection,
            deliberately not a foreign key
        memberships: Tenants this user may access
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    keycloak_user_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    last_tenant_id: Mapped[Optional[UUID]] = mapped_column(nullable=True)

    memberships: Mapped[List["UserTenant"]] = relationship(
        "UserTenant",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "email")
