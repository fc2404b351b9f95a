"""Tenant model: an isolated customer organization.

The ``tenants`` table is global (no row level security); it has to be
readable before a tenant is known.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, generate_repr

if TYPE_CHECKING:
    from .membership import UserTenant

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class Tenant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Tenant model.

    Attributes:
        id: UUID primary key
        name: Display name
        slug: URL-safe lowercase-kebab identifier (unique)
        external_reference_id: Identifier of the matching organization or
            group at the identity provider (unique, optional)
        created_at: When the tenant was created
        updated_at: When the tenant was last updated
        memberships: Users with access to this tenant
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    external_reference_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
    )

    memberships: Mapped[List["UserTenant"]] = relationship(
        "UserTenant",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # Regex match is PostgreSQL syntax; other dialects rely on service validation
        CheckConstraint(f"slug ~ '{SLUG_PATTERN}'", name="slug_format").ddl_if(
            dialect="postgresql"
        ),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "slug")
