"""
Tests for photo migration and integrity validation.
"""

import pytest

from clutterbug.models import Container, Item
from clutterbug.storage.photo_migration import (
    collect_photo_entities,
    migrate_existing_photos,
    referenced_identifiers,
    validate_photo_integrity,
)
from clutterbug.storage.photo_store import ThumbnailSize


@pytest.fixture
def shelf_with_photos(db_session):
    """A container and two items referencing photo identifiers."""
    shelf = Container(name="Shelf", level=1, photo_identifier="shelf-photo")
    hammer = Item(name="Hammer", container=shelf, photo_identifier="hammer-photo")
    wrench = Item(name="Wrench", container=shelf, photo_identifier="wrench-photo")
    Item(name="Nails", container=shelf)
    db_session.add(shelf)
    db_session.commit()
    return shelf, hammer, wrench


def _drop_thumbnails(store, identifier):
    for size in ThumbnailSize:
        (store.thumbnails_dir / f"{identifier}_{size.value}.jpg").unlink()


@pytest.mark.unit
class TestCollectEntities:
    """Test gathering entities that reference photos."""

    def test_items_then_containers(self, db_session, shelf_with_photos):
        entities = collect_photo_entities(db_session)

        assert [entity.name for entity in entities] == ["Hammer", "Wrench", "Shelf"]
        assert referenced_identifiers(entities) == {"shelf-photo", "hammer-photo", "wrench-photo"}


@pytest.mark.unit
class TestMigration:
    """Test thumbnail migration for older photos."""

    def test_migrates_photos_without_thumbnails(self, db_session, photo_store, make_image, shelf_with_photos):
        for identifier in ("shelf-photo", "hammer-photo", "wrench-photo"):
            photo_store.save(identifier, make_image())
        _drop_thumbnails(photo_store, "hammer-photo")
        photo_store.delete("wrench-photo")

        stats = migrate_existing_photos(collect_photo_entities(db_session), photo_store)

        assert stats == {"total": 3, "migrated": 1, "already_current": 1, "failed": 1}
        assert all(photo_store.thumbnail_exists("hammer-photo", size) for size in ThumbnailSize)

    def test_dry_run_changes_nothing(self, db_session, photo_store, make_image, shelf_with_photos):
        photo_store.save("hammer-photo", make_image())
        _drop_thumbnails(photo_store, "hammer-photo")

        stats = migrate_existing_photos(collect_photo_entities(db_session), photo_store, dry_run=True)

        assert stats["migrated"] == 3
        assert stats["failed"] == 0
        assert not photo_store.thumbnail_exists("hammer-photo", ThumbnailSize.SMALL)

    def test_second_run_is_current(self, db_session, photo_store, make_image, shelf_with_photos):
        photo_store.save("hammer-photo", make_image())
        _drop_thumbnails(photo_store, "hammer-photo")
        entities = collect_photo_entities(db_session)

        migrate_existing_photos(entities, photo_store)
        stats = migrate_existing_photos(entities, photo_store)

        assert stats["already_current"] == 1
        assert stats["migrated"] == 0


@pytest.mark.unit
class TestValidation:
    """Test the read-only integrity report."""

    def test_reports_valid_missing_and_orphaned(self, db_session, photo_store, make_image, shelf_with_photos):
        photo_store.save("shelf-photo", make_image())
        photo_store.save("hammer-photo", make_image())
        photo_store.save("stray_photo", make_image())

        report = validate_photo_integrity(collect_photo_entities(db_session), photo_store)

        assert sorted(report.valid_photos) == ["hammer-photo", "shelf-photo"]
        assert [(m.identifier, m.owner_name, m.owner_type) for m in report.missing_photos] == [
            ("wrench-photo", "Wrench", "Item"),
        ]
        assert report.orphaned_photos == ["stray_photo"]
        assert report.total_photos == 3
        assert report.has_issues

    def test_validation_does_not_modify_storage(self, db_session, photo_store, make_image, shelf_with_photos):
        photo_store.save("stray", make_image())

        validate_photo_integrity(collect_photo_entities(db_session), photo_store)

        assert photo_store.exists("stray")
        assert photo_store.list_thumbnail_identifiers() == {"stray"}

    def test_orphaned_thumbnails_are_reported(self, db_session, photo_store, make_image, shelf_with_photos):
        photo_store.save("leftover", make_image())
        (photo_store.photos_dir / "leftover.jpg").unlink()

        report = validate_photo_integrity(collect_photo_entities(db_session), photo_store)

        assert "leftover" in report.orphaned_photos

    def test_clean_store(self, db_session, photo_store, make_image, shelf_with_photos):
        for identifier in ("shelf-photo", "hammer-photo", "wrench-photo"):
            photo_store.save(identifier, make_image())

        report = validate_photo_integrity(collect_photo_entities(db_session), photo_store)

        assert not report.has_issues
        assert report.total_photos == 3
