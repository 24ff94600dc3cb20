"""
Photo storage and photo maintenance utilities.
"""
from clutterbug.storage.photo_store import (
    PhotoStore,
    PhotoStorageInfo,
    ThumbnailSize,
    get_photo_store,
)
from clutterbug.storage.photo_migration import (
    MissingPhoto,
    PhotoValidationReport,
    collect_photo_entities,
    migrate_existing_photos,
    validate_photo_integrity,
)

__all__ = [
    "PhotoStore",
    "PhotoStorageInfo",
    "ThumbnailSize",
    "get_photo_store",
    "MissingPhoto",
    "PhotoValidationReport",
    "collect_photo_entities",
    "migrate_existing_photos",
    "validate_photo_integrity",
]
