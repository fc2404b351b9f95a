"""Tenant-scoped gallery content: albums and photos.

Every row carries ``tenant_id``; row level security restricts each
connection to the rows of the tenant in its ``app.tenant_id`` setting.
"""

import enum
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, generate_repr


class ContentStatus(str, enum.Enum):
    """Publication status shared by albums and photos."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class SoftDeleteMixin:
    """Soft-delete bookkeeping."""

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_by_user_id: Mapped[Optional[UUID]] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )


class Album(Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """Photo album owned by one tenant."""

    __tablename__ = "albums"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_photo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ContentStatus.DRAFT.value,
        server_default=ContentStatus.DRAFT.value,
    )
    created_by_user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    photos: Mapped[List["Photo"]] = relationship(
        "Photo",
        back_populates="album",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_albums_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "tenant_id", "name")


class Photo(Base, UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """Photo inside an album; shares the album's tenant."""

    __tablename__ = "photos"

    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )
    album_id: Mapped[UUID] = mapped_column(
        ForeignKey("albums.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ContentStatus.DRAFT.value,
        server_default=ContentStatus.DRAFT.value,
    )
    created_by_user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id"), nullable=False)

    album: Mapped["Album"] = relationship("Album", back_populates="photos")

    __table_args__ = (
        Index("ix_photos_tenant_album", "tenant_id", "album_id"),
        Index("ix_photos_tenant_created", "tenant_id", "created_at"),
    )

    def __repr__(self) -> str:
        return generate_repr(self, "id", "tenant_id", "title")
