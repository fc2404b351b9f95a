"""Repositories for tenant-scoped gallery content.

Reads, updates and deletes carry no tenant predicate: row level security
hides every row outside the connection's tenant, so a row owned by another
tenant is indistinguishable from a missing one. Only inserts ask the
:class:`TenantAccessor` for the tenant, because a new row has to name its
owner and the insert policy rejects any other value.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from galleria.db.models import Album, ContentStatus, Photo
from galleria.db.session import Database
from galleria.errors import NotFoundError
from galleria.tenant.accessor import TenantAccessorProtocol, default_accessor

ALBUM_UPDATABLE_FIELDS = frozenset({"name", "description", "cover_photo_url", "status"})
PHOTO_UPDATABLE_FIELDS = frozenset({"title", "description", "url", "thumbnail_url", "status"})


def _check_fields(changes: dict, allowed: frozenset, kind: str) -> None:
    unknown = set(changes) - allowed
    if unknown:
        # tenant_id in particular is immutable
        raise ValueError(f"Cannot update {kind} field(s): {', '.join(sorted(unknown))}")


class AlbumRepository:
    def __init__(self, database: Database, accessor: TenantAccessorProtocol = default_accessor):
        self.db = database
        self.accessor = accessor

    async def list(self, include_deleted: bool = False) -> List[Album]:
        stmt = select(Album).order_by(Album.created_at.desc(), Album.id)
        if not include_deleted:
            stmt = stmt.where(Album.is_deleted.is_(False))
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def _get(self, session: AsyncSession, album_id: UUID, include_deleted: bool) -> Optional[Album]:
        stmt = select(Album).where(Album.id == album_id)
        if not include_deleted:
            stmt = stmt.where(Album.is_deleted.is_(False))
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get(self, album_id: UUID, include_deleted: bool = False) -> Optional[Album]:
        async with self.db.session() as session:
            return await self._get(session, album_id, include_deleted)

    async def get_with_photos(self, album_id: UUID) -> Optional[Tuple[Album, List[Photo]]]:
        """Album plus its live photos, read on one connection."""
        async with self.db.transaction() as session:
            album = await self._get(session, album_id, include_deleted=False)
            if album is None:
                return None
            result = await session.execute(
                select(Photo)
                .where(Photo.album_id == album_id, Photo.is_deleted.is_(False))
                .order_by(Photo.created_at, Photo.id)
            )
            return album, list(result.scalars().all())

    async def create(
        self,
        name: str,
        description: Optional[str] = None,
        cover_photo_url: Optional[str] = None,
        status: str = ContentStatus.DRAFT.value,
    ) -> Album:
        album = Album(
            tenant_id=self.accessor.get_tenant_id(),
            created_by_user_id=self.accessor.require_user_id(),
            name=name,
            description=description,
            cover_photo_url=cover_photo_url,
            status=status,
        )
        async with self.db.session() as session:
            session.add(album)
            await session.flush()
            await session.refresh(album)
        return album

    async def update(self, album_id: UUID, **changes: Any) -> Optional[Album]:
        _check_fields(changes, ALBUM_UPDATABLE_FIELDS, "album")
        async with self.db.transaction() as session:
            album = await self._get(session, album_id, include_deleted=False)
            if album is None:
                return None
            for name, value in changes.items():
                setattr(album, name, value)
            await session.flush()
            await session.refresh(album)
            return album

    async def soft_delete(self, album_id: UUID) -> bool:
        async with self.db.transaction() as session:
            album = await self._get(session, album_id, include_deleted=False)
            if album is None:
                return False
            album.is_deleted = True
            album.deleted_at = datetime.now(timezone.utc)
            album.deleted_by_user_id = self.accessor.get_user_id()
            return True

    async def restore(self, album_id: UUID) -> Optional[Album]:
        async with self.db.transaction() as session:
            album = await self._get(session, album_id, include_deleted=True)
            if album is None or not album.is_deleted:
                return None
            album.is_deleted = False
            album.deleted_at = None
            album.deleted_by_user_id = None
            await session.flush()
            await session.refresh(album)
            return album


class PhotoRepository:
    def __init__(self, database: Database, accessor: TenantAccessorProtocol = default_accessor):
        self.db = database
        self.accessor = accessor

    async def list(self, album_id: Optional[UUID] = None, include_deleted: bool = False) -> List[Photo]:
        stmt = select(Photo).order_by(Photo.created_at.desc(), Photo.id)
        if album_id is not None:
            stmt = stmt.where(Photo.album_id == album_id)
        if not include_deleted:
            stmt = stmt.where(Photo.is_deleted.is_(False))
        async with self.db.session() as session:
            return list((await session.execute(stmt)).scalars().all())

    async def list_for_album(self, album_id: UUID) -> List[Photo]:
        """Live photos of a visible album; NotFoundError if the album is not visible."""
        async with self.db.transaction() as session:
            album = await session.execute(
                select(Album.id).where(Album.id == album_id, Album.is_deleted.is_(False))
            )
            if album.scalar_one_or_none() is None:
                raise NotFoundError("Album", album_id)
            result = await session.execute(
                select(Photo)
                .where(Photo.album_id == album_id, Photo.is_deleted.is_(False))
                .order_by(Photo.created_at, Photo.id)
            )
            return list(result.scalars().all())

    async def _get(self, session: AsyncSession, photo_id: UUID, include_deleted: bool) -> Optional[Photo]:
        stmt = select(Photo).where(Photo.id == photo_id)
        if not include_deleted:
            stmt = stmt.where(Photo.is_deleted.is_(False))
        return (await session.execute(stmt)).scalar_one_or_none()

    async def get(self, photo_id: UUID, include_deleted: bool = False) -> Optional[Photo]:
        async with self.db.session() as session:
            return await self._get(session, photo_id, include_deleted)

    async def create(
        self,
        album_id: UUID,
        title: str,
        url: str,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        status: str = ContentStatus.DRAFT.value,
    ) -> Photo:
        """Add a photo to a visible album.

        Foreign key checks ignore row level security, so the album is looked
        up first; an album of another tenant raises NotFoundError.
        """
        photo = Photo(
            tenant_id=self.accessor.get_tenant_id(),
            created_by_user_id=self.accessor.require_user_id(),
            album_id=album_id,
            title=title,
            url=url,
            description=description,
            thumbnail_url=thumbnail_url,
            status=status,
        )
        async with self.db.transaction() as session:
            album = await session.execute(
                select(Album.id).where(Album.id == album_id, Album.is_deleted.is_(False))
            )
            if album.scalar_one_or_none() is None:
                raise NotFoundError("Album", album_id)
            session.add(photo)
            await session.flush()
            await session.refresh(photo)
        return photo

    async def update(self, photo_id: UUID, **changes: Any) -> Optional[Photo]:
        _check_fields(changes, PHOTO_UPDATABLE_FIELDS, "photo")
        async with self.db.transaction() as session:
            photo = await self._get(session, photo_id, include_deleted=False)
            if photo is None:
                return None
            for name, value in changes.items():
                setattr(photo, name, value)
            await session.flush()
            await session.refresh(photo)
            return photo

    async def soft_delete(self, photo_id: UUID) -> bool:
        async with self.db.transaction() as session:
            photo = await self._get(session, photo_id, include_deleted=False)
            if photo is None:
                return False
            photo.is_deleted = True
            photo.deleted_at = datetime.now(timezone.utc)
            photo.deleted_by_user_id = self.accessor.get_user_id()
            return True

    async def restore(self, photo_id: UUID) -> Optional[Photo]:
        async with self.db.transaction() as session:
            photo = await self._get(session, photo_id, include_deleted=True)
            if photo is None or not photo.is_deleted:
                return None
            photo.is_deleted = False
            photo.deleted_at = None
            photo.deleted_by_user_id = None
            await session.flush()
            await session.refresh(photo)
            return photo
