"""Photo routes."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from galleria.api.dependencies import ServiceContainer, get_services, require_tenant
from galleria.api.models import PhotoCreateRequest, PhotoResponse, PhotoUpdateRequest
from galleria.errors import NotFoundError

router = APIRouter(prefix="/photos", tags=["photos"])

WRITE = [Depends(require_tenant)]


@router.get("", response_model=List[PhotoResponse])
async def list_photos(
    album_id: Optional[UUID] = Query(default=None, alias="albumId"),
    include_deleted: bool = Query(default=False, alias="includeDeleted"),
    services: ServiceContainer = Depends(get_services),
) -> List[PhotoResponse]:
    photos = await services.photos.list(album_id=album_id, include_deleted=include_deleted)
    return [PhotoResponse.model_validate(p) for p in photos]


@router.post(
    "",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=WRITE,
)
async def create_photo(
    request: PhotoCreateRequest,
    services: ServiceContainer = Depends(get_services),
) -> PhotoResponse:
    photo = await services.photos.create(
        album_id=request.album_id,
        title=request.title,
        url=request.url,
        description=request.description,
        thumbnail_url=request.thumbnail_url,
        status=request.status,
    )
    return PhotoResponse.model_validate(photo)


@router.get("/{photo_id}", response_model=PhotoResponse)
async def get_photo(
    photo_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> PhotoResponse:
    photo = await services.photos.get(photo_id)
    if photo is None:
        raise NotFoundError("Photo", photo_id)
    return PhotoResponse.model_validate(photo)


@router.patch("/{photo_id}", response_model=PhotoResponse, dependencies=WRITE)
async def update_photo(
    photo_id: UUID,
    request: PhotoUpdateRequest,
    services: ServiceContainer = Depends(get_services),
) -> PhotoResponse:
    photo = await services.photos.update(photo_id, **request.model_dump(exclude_unset=True))
    if photo is None:
        raise NotFoundError("Photo", photo_id)
    return PhotoResponse.model_validate(photo)


@router.delete(
    "/{photo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=WRITE,
)
async def delete_photo(
    photo_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> Response:
    if not await services.photos.soft_delete(photo_id):
        raise NotFoundError("Photo", photo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{photo_id}/restore", response_model=PhotoResponse, dependencies=WRITE)
async def restore_photo(
    photo_id: UUID,
    services: ServiceContainer = Depends(get_services),
) -> PhotoResponse:
    photo = await services.photos.restore(photo_id)
    if photo is None:
        raise NotFoundError("Deleted photo", photo_id)
    return PhotoResponse.model_validate(photo)
