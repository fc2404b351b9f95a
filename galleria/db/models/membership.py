"""User-tenant membership: the sole authority for tenant access."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, generate_repr

if TYPE_CHECKING:
    from .tenant import Tenant
    from .user import User


class UserTenant(Base):
    """Grants ``user_id`` access to ``tenant_id``.

    Composite primary key, so a user holds at most one row per tenant.
    """

    __tablename__ = "user_tenants"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
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

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="memberships")

    __table_args__ = (
        Index("ix_user_tenants_tenant_id", "tenant_id"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "user_id", "tenant_id")
