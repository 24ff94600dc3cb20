"""
Photo migration and integrity validation.

Walks the containers and items that reference photos and compares them with
what the photo store actually holds on disk.
"""
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Union

from sqlalchemy.orm import Session

from clutterbug.models.container import Container
from clutterbug.models.item import Item
from clutterbug.storage.photo_store import PhotoStore, ThumbnailSize

logger = logging.getLogger(__name__)

PhotoEntity = Union[Container, Item]


@dataclass
class MissingPhoto:
    """An entity whose photo identifier has no original on disk"""
    identifier: str
    owner_name: str
    owner_type: str


@dataclass
class PhotoValidationReport:
    valid_photos: List[str] = field(default_factory=list)
    missing_photos: List[MissingPhoto] = field(default_factory=list)
    orphaned_photos: List[str] = field(default_factory=list)

    @property
    def total_photos(self) -> int:
        return len(self.valid_photos) + len(self.missing_photos)

    @property
    def has_issues(self) -> bool:
        return bool(self.missing_photos) or bool(self.orphaned_photos)


def collect_photo_entities(db: Session) -> List[PhotoEntity]:
    """All items and containers that carry a photo identifier"""
    items = db.query(Item).filter(Item.photo_identifier.isnot(None)).order_by(Item.id).all()
    containers = db.query(Container).filter(Container.photo_identifier.isnot(None)).order_by(Container.id).all()
    return [*items, *containers]


def referenced_identifiers(entities: Iterable[PhotoEntity]) -> set:
    return {entity.photo_identifier for entity in entities if entity.photo_identifier}


def _migrate_photo(identifier: str, store: PhotoStore) -> bool:
    original = store.load(identifier)
    if original is None:
        logger.warning(f"Could not load original photo: {identifier}")
        return False

    buffer = io.BytesIO()
    image = original if original.mode in ("RGB", "L") else original.convert("RGB")
    image.save(buffer, format="JPEG", quality=100)

    # Re-saving regenerates every thumbnail
    return store.save(identifier, buffer.getvalue())


def migrate_existing_photos(
    entities: Iterable[PhotoEntity],
    store: PhotoStore,
    dry_run: bool = False
) -> Dict[str, Any]:
    """
    Regenerate thumbnails for photos saved before thumbnails existed.

    A photo counts as current when its small thumbnail is on disk. Each photo
    is migrated independently; a failure is logged and counted.

    :param entities: Containers/items to inspect
    :param store: Photo store holding the files
    :param dry_run: If True, only report what would be migrated
    :return: Migration statistics
    """
    stats = {
        "total": 0,
        "migrated": 0,
        "already_current": 0,
        "failed": 0,
    }

    identifiers = sorted(referenced_identifiers(entities))
    stats["total"] = len(identifiers)
    logger.info(f"Starting photo migration: {stats['total']} photos referenced")

    for identifier in identifiers:
        try:
            if store.thumbnail_exists(identifier, ThumbnailSize.SMALL):
                stats["already_current"] += 1
                continue

            if dry_run:
                logger.info(f"[DRY RUN] Would migrate photo {identifier}")
                stats["migrated"] += 1
                continue

            if _migrate_photo(identifier, store):
                logger.info(f"Migrated photo: {identifier}")
                stats["migrated"] += 1
            else:
                stats["failed"] += 1
        except Exception as e:
            logger.error(f"Error migrating photo {identifier}: {e}", exc_info=True)
            stats["failed"] += 1

    logger.info(f"Photo migration complete: {stats['migrated']} migrated, {stats['failed']} failed")
    return stats


def validate_photo_integrity(entities: Iterable[PhotoEntity], store: PhotoStore) -> PhotoValidationReport:
    """
    Cross-reference entity photo identifiers with files on disk.

    Missing: referenced by an entity but no original on disk.
    Orphaned: an original or thumbnail on disk that no entity references.

    Read-only; nothing is deleted or regenerated.
    """
    report = PhotoValidationReport()
    referenced = set()

    for entity in entities:
        identifier = entity.photo_identifier
        if not identifier:
            continue
        referenced.add(identifier)
        if store.exists(identifier):
            report.valid_photos.append(identifier)
        else:
            report.missing_photos.append(MissingPhoto(
                identifier=identifier,
                owner_name=entity.name,
                owner_type=type(entity).__name__,
            ))

    on_disk = store.list_identifiers() | store.list_thumbnail_identifiers()
    report.orphaned_photos = sorted(on_disk - referenced)

    if report.has_issues:
        logger.warning(
            f"Photo integrity issues: {len(report.missing_photos)} missing, "
            f"{len(report.orphaned_photos)} orphaned"
        )
    return report
