"""
Photo routes - upload, download and storage maintenance
"""
from typing import Literal, Union

from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, HTTPException, Response, status

from clutterbug.core.database import get_db
from clutterbug.models.container import Container
from clutterbug.models.item import Item
from clutterbug.services.container_service import ContainerService
from clutterbug.services.deps import get_request_body, get_store
from clutterbug.storage.photo_migration import (
    collect_photo_entities,
    migrate_existing_photos,
    referenced_identifiers,
    validate_photo_integrity,
)
from clutterbug.storage.photo_store import PhotoStore, ThumbnailSize
from clutterbug.schemas.photo import (
    PhotoUploadResponse,
    PhotoStorageInfoResponse,
    PhotoValidationReportResponse,
    MissingPhotoResponse,
    PhotoCleanupResponse,
    PhotoMigrationResponse,
)

router = APIRouter(prefix="/photos", tags=["photos"])

EntityKind = Literal["containers", "items"]
JPEG_MEDIA_TYPE = "image/jpeg"


def _get_entity_or_404(db: Session, kind: str, entity_id: int) -> Union[Container, Item]:
    if kind == "containers":
        entity = ContainerService.get_container(db, entity_id)
    else:
        entity = ContainerService.get_item(db, entity_id)
    if not entity:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{kind[:-1].capitalize()} with ID {entity_id} not found"
        )
    return entity


@router.get(
    "/storage",
    response_model=PhotoStorageInfoResponse,
    summary="Photo storage usage"
)
def get_storage_info(store: PhotoStore = Depends(get_store)):
    info = store.detailed_storage_info()
    return PhotoStorageInfoResponse(
        total_bytes=info.total_size,
        original_bytes=info.original_photos_size,
        thumbnail_bytes=info.thumbnails_size,
        photo_count=info.photo_count,
        thumbnail_count=info.thumbnail_count,
        compression_ratio=info.compression_ratio,
        formatted_total_size=info.formatted_total_size,
    )


@router.get(
    "/integrity",
    response_model=PhotoValidationReportResponse,
    summary="Validate photo integrity",
    description="Report missing and orphaned photos; nothing is changed"
)
def get_photo_integrity(db: Session = Depends(get_db), store: PhotoStore = Depends(get_store)):
    report = validate_photo_integrity(collect_photo_entities(db), store)
    return PhotoValidationReportResponse(
        valid_photos=report.valid_photos,
        missing_photos=[
            MissingPhotoResponse(
                identifier=missing.identifier,
                owner_name=missing.owner_name,
                owner_type=missing.owner_type,
            )
            for missing in report.missing_photos
        ],
        orphaned_photos=report.orphaned_photos,
        total_photos=report.total_photos,
        has_issues=report.has_issues,
    )


@router.post(
    "/cleanup",
    response_model=PhotoCleanupResponse,
    summary="Remove orphaned photo files"
)
def cleanup_photos(db: Session = Depends(get_db), store: PhotoStore = Depends(get_store)):
    valid = referenced_identifiers(collect_photo_entities(db))
    return PhotoCleanupResponse(removed_files=store.cleanup_orphans(valid))


@router.post(
    "/migrate",
    response_model=PhotoMigrationResponse,
    summary="Generate thumbnails for older photos",
    description="Regenerate thumbnails for referenced photos that have none"
)
def migrate_photos(
    dry_run: bool = False,
    db: Session = Depends(get_db),
    store: PhotoStore = Depends(get_store)
):
    stats = migrate_existing_photos(collect_photo_entities(db), store, dry_run=dry_run)
    return PhotoMigrationResponse(dry_run=dry_run, **stats)


@router.put(
    "/{kind}/{entity_id}",
    response_model=PhotoUploadResponse,
    summary="Upload a photo",
    description="Attach a photo to a container or item; the request body is the raw image"
)
def upload_photo(
    kind: EntityKind,
    entity_id: int,
    body: bytes = Depends(get_request_body),
    db: Session = Depends(get_db),
    store: PhotoStore = Depends(get_store)
):
    """
    Upload a photo

    - **kind**: "containers" or "items"
    - **entity_id**: ID of the container or item
    - Body: image bytes in any format Pillow can read; any previous photo is replaced
    """
    entity = _get_entity_or_404(db, kind, entity_id)
    if not body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body is empty"
        )

    try:
        identifier = ContainerService.attach_photo(db, entity, body, store)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    if identifier is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid image data"
        )
    return PhotoUploadResponse(photo_identifier=identifier)


@router.delete(
    "/{kind}/{entity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a photo"
)
def delete_photo(
    kind: EntityKind,
    entity_id: int,
    db: Session = Depends(get_db),
    store: PhotoStore = Depends(get_store)
):
    entity = _get_entity_or_404(db, kind, entity_id)
    try:
        removed = ContainerService.clear_photo(db, entity, store)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No photo attached"
        )
    return None


@router.get(
    "/{identifier}",
    summary="Download the original photo",
    response_class=Response,
    responses={200: {"content": {JPEG_MEDIA_TYPE: {}}}}
)
def get_photo(identifier: str, store: PhotoStore = Depends(get_store)):
    data = store.read_bytes(identifier)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Photo {identifier} not found"
        )
    return Response(content=data, media_type=JPEG_MEDIA_TYPE)


@router.get(
    "/{identifier}/thumbnail/{size}",
    summary="Download a thumbnail",
    description="Missing thumbnails are regenerated from the original",
    response_class=Response,
    responses={200: {"content": {JPEG_MEDIA_TYPE: {}}}}
)
def get_thumbnail(identifier: str, size: ThumbnailSize, store: PhotoStore = Depends(get_store)):
    data = store.read_bytes(identifier, size)
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Photo {identifier} not found"
        )
    return Response(content=data, media_type=JPEG_MEDIA_TYPE)
