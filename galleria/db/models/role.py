"""Role catalog and per-tenant role assignments.

``roles`` is a global, code-defined catalog (see
``galleria.services.role.ROLE_NAMES``). ``user_roles`` is tenant-scoped
and carries the same tenant isolation policy as albums and photos, so a
user can be admin in one tenant and viewer in another.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, generate_repr


class Role(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    def __repr__(self) -> str:
        return generate_repr(self, "id", "name")


class UserRole(Base):
    """Grants ``role_id`` to ``user_id`` inside ``tenant_id``."""

    __tablename__ = "user_roles"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_user_roles_user_tenant", "user_id", "tenant_id"),
        Index("ix_user_roles_tenant_id", "tenant_id"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "user_id", "role_id", "tenant_id")
