"""Album routes.

Which albums are visible is decided by the database, not by these
handlers. Writes additionally need a signed-in user with a current tenant.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from galleria.api.dependencies import ServiceContainer, get_services, require_tenant
from galleria.api.models import (
    AlbumCreateRequest,
    AlbumPhotoCreateRequest,
    AlbumResponse,
    AlbumUpdateRequest,
    AlbumWithPhotosResponse,
    PhotoResponse,
)
from galleria.errors import NotFoundError
from galleria.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/albums", tags=["albums"])

WRITE = [Depends(require_tenant)]


@router.get("", response_model=List[AlbumResponse])
async def list_albums(
    include_deleted: bool = Query(default=False, alias="includeDeleted"),
    services: ServiceContainer = Depends(get_services),
) -> List[AlbumResponse]:
    albums = await services.albums.list(include_deleted=include_deleted)
    return [AlbumResponse.model_validate(a) for a in albums]


@router.post(
    "",
    response_model=AlbumResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=WRITE,
)
async def create_album(
    request: AlbumCreateRequest,
    services: ServiceContainer = Depends(get_services),
) -> AlbumResponse:
    album = await services.albums.create(
        name=request.name,
        description=request.description,
        cover_photo_url=request.cover_photo_url,
        status=request.status,
    )
    logger.info("Album created", extra={"album_id": str(album.id)})
    return AlbumResponse.model_validate(album)


@router.get("/{album_id}", response_model=AlbumWithPhotosResponse)
async def get_album(
    album_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> AlbumWithPhotosResponse:
    """Album with its non-deleted photos."""
    found = await services.albums.get_with_photos(album_id)
    if found is None:
        raise NotFoundError("Album", album_id)
    album, photos = found
    # The lazy ``album.photos`` relationship is never loaded in async code
    return AlbumWithPhotosResponse(
        **AlbumResponse.model_validate(album).model_dump(),
        photos=[PhotoResponse.model_validate(p) for p in photos],
    )


@router.patch("/{album_id}", response_model=AlbumResponse, dependencies=WRITE)
async def update_album(
    album_id: UUID,
    request: AlbumUpdateRequest,
    services: ServiceContainer = Depends(get_services),
) -> AlbumResponse:
    changes = request.model_dump(exclude_unset=True)
    album = await services.albums.update(album_id, **changes)
    if album is None:
        raise NotFoundError("Album", album_id)
    return AlbumResponse.model_validate(album)


@router.delete(
    "/{album_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=WRITE,
)
async def delete_album(
    album_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> Response:
    if not await services.albums.soft_delete(album_id):
        raise NotFoundError("Album", album_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{album_id}/restore", response_model=AlbumResponse, dependencies=WRITE)
async def restore_album(
    album_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> AlbumResponse:
    album = await services.albums.restore(album_id)
    if album is None:
        raise NotFoundError("Deleted album", album_id)
    return AlbumResponse.model_validate(album)


@router.get("/{album_id}/photos", response_model=List[PhotoResponse])
async def list_album_photos(
    album_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> List[PhotoResponse]:
    photos = await services.photos.list_for_album(album_id)
    return [PhotoResponse.model_validate(p) for p in photos]


@router.post(
    "/{album_id}/photos",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=WRITE,
)
async def add_album_photo(
    album_id: UUID,
    request: AlbumPhotoCreateRequest,
    services: ServiceContainer = Depends(get_services),
) -> PhotoResponse:
    photo = await services.photos.create(
        album_id=album_id,
        title=request.title,
        url=request.url,
        description=request.description,
        thumbnail_url=request.thumbnail_url,
        status=request.status,
    )
    return PhotoResponse.model_validate(photo)
