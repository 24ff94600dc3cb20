"""
Tests for hierarchy bootstrap, activation and containment rules.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from clutterbug.core.database import Base
from clutterbug.core.hierarchy_presets import DEFAULT_PRESET_NAME, PRESET_LEVELS
from clutterbug.models import Container, HierarchyConfiguration, HierarchyLevel, Item
from clutterbug.schemas.hierarchy import HierarchyConfigurationCreate, HierarchyLevelCreate
from clutterbug.services.hierarchy_manager import HierarchyManager


def _by_name(manager: HierarchyManager, name: str) -> HierarchyConfiguration:
    return next(config for config in manager.all_configurations() if config.name == name)


def _active_ids(manager: HierarchyManager) -> list[int]:
    return [config.id for config in manager.all_configurations() if config.is_active]


def _container_chain(db, depth: int) -> list[Container]:
    """Persist containers at levels 1..depth without hierarchy checks."""
    chain = []
    parent = None
    for level in range(1, depth + 1):
        container = Container(name=f"Level {level} box", level=level, parent=parent)
        db.add(container)
        chain.append(container)
        parent = container
    db.commit()
    return chain


def _storage_down(*args, **kwargs):
    raise SQLAlchemyError("database unavailable")


def _custom(name: str, *level_names: str) -> HierarchyConfigurationCreate:
    return HierarchyConfigurationCreate(
        name=name,
        levels=[HierarchyLevelCreate(name=level_name) for level_name in level_names],
    )


@pytest.mark.unit
class TestBootstrap:
    """Test seeding and repair of the active configuration."""

    def test_seeds_presets_with_workshop_active(self, db_session):
        manager = HierarchyManager(db_session)
        active = manager.ensure_defaults_exist()

        assert active is not None
        assert active.name == DEFAULT_PRESET_NAME
        configs = manager.all_configurations()
        assert {config.name for config in configs} == set(PRESET_LEVELS)
        assert all(config.is_default for config in configs)
        assert _active_ids(manager) == [active.id]

    def test_preset_levels_are_contiguous(self, hierarchy):
        for config in hierarchy.all_configurations():
            orders = [level.order for level in config.sorted_levels]
            assert orders == list(range(1, config.max_levels + 1))

    def test_is_idempotent(self, hierarchy):
        first = hierarchy.active_configuration()
        second = hierarchy.ensure_defaults_exist()

        assert second.id == first.id
        assert len(hierarchy.all_configurations()) == len(PRESET_LEVELS)

    def test_repairs_multiple_active(self, db_session, hierarchy):
        _by_name(hierarchy, "Simple (3 Levels)").is_active = True
        _by_name(hierarchy, "Office (3 Levels)").is_active = True
        db_session.commit()
        oldest_active = min(_active_ids(hierarchy))

        active = hierarchy.ensure_defaults_exist()

        assert _active_ids(hierarchy) == [oldest_active]
        assert active.id == oldest_active

    def test_activates_workshop_when_none_active(self, db_session, hierarchy):
        for config in hierarchy.all_configurations():
            config.is_active = False
        db_session.commit()

        active = hierarchy.ensure_defaults_exist()

        assert active.name == DEFAULT_PRESET_NAME
        assert len(_active_ids(hierarchy)) == 1

    def test_effective_configuration_without_bootstrap(self, db_session):
        manager = HierarchyManager(db_session)

        assert manager.active_configuration() is None
        config = manager.effective_configuration()
        assert config.name == DEFAULT_PRESET_NAME
        assert config.id is None
        assert manager.max_levels() == 5
        assert manager.all_configurations() == []

    def test_query_failure_falls_back_to_workshop(self, db_session, hierarchy, monkeypatch):
        monkeypatch.setattr(db_session, "query", _storage_down)

        assert hierarchy.active_configuration() is None
        config = hierarchy.effective_configuration()
        assert config.name == DEFAULT_PRESET_NAME
        assert config.id is None
        assert hierarchy.can_contain(1, 2)
        assert not hierarchy.can_contain(1, 3)
        assert hierarchy.is_last_level(5)
        assert hierarchy.level_metadata(2).name == "Room"

    def test_concurrent_bootstrap_seeds_once(self, tmp_path):
        # File database so every session gets its own connection
        file_engine = create_engine(
            f"sqlite:///{tmp_path / 'bootstrap.db'}",
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(bind=file_engine)
        factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

        def bootstrap(_):
            session = factory()
            try:
                active = HierarchyManager(session).ensure_defaults_exist()
                return active.name if active is not None else None
            finally:
                session.close()

        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                names = list(pool.map(bootstrap, range(16)))

            session = factory()
            try:
                configs = HierarchyManager(session).all_configurations()
                assert len(configs) == len(PRESET_LEVELS)
                assert [config.name for config in configs if config.is_active] == [DEFAULT_PRESET_NAME]
            finally:
                session.close()
            assert names == [DEFAULT_PRESET_NAME] * 16
        finally:
            file_engine.dispose()


@pytest.mark.unit
class TestAdjacency:
    """Test the immediate-next-level containment rule."""

    @pytest.mark.parametrize("max_levels", [2, 3, 4, 5, 6])
    def test_can_contain_matches_formula(self, max_levels):
        config = HierarchyConfiguration(name="grid", max_levels=max_levels)
        for parent in range(1, 7):
            for child in range(1, 7):
                expected = child == parent + 1 and child <= max_levels
                assert config.can_contain(parent, child) is expected, (parent, child, max_levels)

    def test_manager_follows_active_configuration(self, hierarchy):
        assert hierarchy.can_contain(1, 2)
        assert hierarchy.can_contain(4, 5)
        assert not hierarchy.can_contain(1, 3)
        assert not hierarchy.can_contain(2, 1)
        assert not hierarchy.can_contain(5, 6)

    def test_simple_configuration(self, hierarchy):
        assert hierarchy.activate(_by_name(hierarchy, "Simple (3 Levels)"))

        assert hierarchy.max_levels() == 3
        assert hierarchy.can_contain(1, 2)
        assert hierarchy.can_contain(2, 3)
        assert not hierarchy.can_contain(1, 3)
        assert not hierarchy.can_contain(2, 4)
        assert not hierarchy.can_contain(3, 4)

    def test_is_last_level(self, hierarchy):
        assert hierarchy.is_last_level(5)
        assert not hierarchy.is_last_level(4)
        assert not hierarchy.is_last_level(1)


@pytest.mark.unit
class TestActivation:
    """Test switching the active configuration."""

    def test_exactly_one_active_after_any_sequence(self, hierarchy):
        configs = hierarchy.all_configurations()
        for config in configs + list(reversed(configs)) + configs[::2]:
            assert hierarchy.activate(config)
            assert _active_ids(hierarchy) == [config.id]
            assert hierarchy.active_configuration().id == config.id

    def test_reactivating_active_is_noop(self, hierarchy):
        active = hierarchy.active_configuration()
        assert hierarchy.activate(active)
        assert _active_ids(hierarchy) == [active.id]

    def test_refuses_unsaved_configuration(self, hierarchy):
        transient = HierarchyConfiguration(name="Draft", max_levels=3)
        previous = hierarchy.active_configuration().id

        assert not hierarchy.activate(transient)
        assert _active_ids(hierarchy) == [previous]

    def test_refuses_when_containers_are_deeper(self, db_session, hierarchy):
        _container_chain(db_session, 4)
        workshop = hierarchy.active_configuration()

        assert not hierarchy.activate(_by_name(hierarchy, "Simple (3 Levels)"))
        assert _active_ids(hierarchy) == [workshop.id]

        assert hierarchy.activate(_by_name(hierarchy, "Home Organization (4 Levels)"))
        assert hierarchy.max_levels() == 4

    def test_commit_failure_keeps_previous_active(self, db_session, hierarchy, monkeypatch):
        workshop = hierarchy.active_configuration()
        simple = _by_name(hierarchy, "Simple (3 Levels)")
        simple_id = simple.id

        monkeypatch.setattr(db_session, "commit", _storage_down)
        assert not hierarchy.activate(simple)
        monkeypatch.undo()

        assert _active_ids(hierarchy) == [workshop.id]
        assert not hierarchy.get_configuration(simple_id).is_active
        assert hierarchy.max_levels() == 5


@pytest.mark.unit
class TestLevelMetadata:
    """Test level descriptor resolution."""

    def test_configured_level(self, hierarchy):
        building = hierarchy.level_metadata(1)
        area = hierarchy.level_metadata(3)

        assert building.name == "Building"
        assert building.plural_name == "Buildings"
        assert building.unit == "ft"
        assert building.is_large_scale
        assert building.short_name == "BLDG"
        assert area.name == "Storage Area"
        assert area.unit == "in"
        assert not area.is_large_scale

    def test_unconfigured_level_falls_back(self, hierarchy):
        descriptor = hierarchy.level_metadata(9)

        assert descriptor.name == "Level 9"
        assert descriptor.plural_name == "Level 9s"
        assert descriptor.icon == "square.fill"
        assert descriptor.color == "blue"
        assert descriptor.unit == "in"
        assert not descriptor.is_large_scale

    def test_metadata_follows_activation(self, hierarchy):
        hierarchy.activate(_by_name(hierarchy, "Warehouse (5 Levels)"))
        assert hierarchy.level_metadata(3).name == "Aisle"
        assert hierarchy.level_metadata(3).unit == "ft"

    def test_container_type(self, db_session, hierarchy):
        chain = _container_chain(db_session, 5)

        room = hierarchy.container_type(chain[1])
        detail = hierarchy.container_type(chain[4])

        assert room.label == "Room (Level 2)"
        assert not room.can_contain_items
        assert detail.level == 5
        assert detail.can_contain_items


@pytest.mark.unit
class TestCustomConfigurations:
    """Test creating and deleting user-defined configurations."""

    def test_create_fills_defaults(self, hierarchy):
        config = hierarchy.create_configuration(_custom("Garage", "Garage", "Wall", "Bin"))

        assert config.id is not None
        assert config.max_levels == 3
        assert not config.is_default
        assert not config.is_active
        levels = config.sorted_levels
        assert [level.plural_name for level in levels] == ["Garages", "Walls", "Bins"]
        assert [level.dimension_unit for level in levels] == ["ft", "ft", "in"]
        assert levels[0].icon == "square.fill"

    def test_create_and_activate(self, hierarchy):
        config = hierarchy.create_configuration(_custom("Two", "Shed", "Shelf"), activate=True)

        assert hierarchy.active_configuration().id == config.id
        assert hierarchy.is_last_level(2)

    def test_refused_activation_keeps_configuration_saved(self, db_session, hierarchy):
        _container_chain(db_session, 4)
        workshop = hierarchy.active_configuration()

        config = hierarchy.create_configuration(_custom("Shallow", "Shed", "Shelf"), activate=True)

        assert config.id is not None
        assert not config.is_active
        assert hierarchy.get_configuration(config.id) is not None
        assert _active_ids(hierarchy) == [workshop.id]

    def test_level_count_is_validated(self):
        with pytest.raises(ValidationError):
            _custom("Too small", "Only")
        with pytest.raises(ValidationError):
            _custom("Too deep", "A", "B", "C", "D", "E", "F", "G")

    def test_blank_level_name_is_rejected(self):
        with pytest.raises(ValidationError):
            _custom("Blank", "Room", "   ")

    def test_delete_custom_removes_levels(self, db_session, hierarchy):
        config = hierarchy.create_configuration(_custom("Temp", "A", "B"))
        config_id = config.id

        assert hierarchy.delete_configuration(config)
        assert hierarchy.get_configuration(config_id) is None
        assert db_session.query(HierarchyLevel).filter(HierarchyLevel.configuration_id == config_id).count() == 0

    def test_delete_active_is_refused(self, hierarchy):
        config = hierarchy.create_configuration(_custom("Mine", "A", "B"), activate=True)

        assert not hierarchy.delete_configuration(config)
        assert hierarchy.get_configuration(config.id) is not None

    def test_delete_builtin_is_refused(self, hierarchy):
        simple = _by_name(hierarchy, "Simple (3 Levels)")

        assert not hierarchy.delete_configuration(simple)
        assert hierarchy.get_configuration(simple.id) is not None


@pytest.mark.unit
class TestValidateSetup:
    """Test the setup consistency report."""

    def test_clean_setup(self, db_session, hierarchy):
        _container_chain(db_session, 3)

        report = hierarchy.validate_setup()

        assert report.is_valid
        assert report.active_configuration == DEFAULT_PRESET_NAME
        assert report.configuration_count == len(PRESET_LEVELS)
        assert report.container_count == 3
        assert report.item_count == 0
        assert report.out_of_range_container_ids == []

    def test_reports_containers_beyond_max_levels(self, db_session, hierarchy):
        chain = _container_chain(db_session, 6)

        report = hierarchy.validate_setup()

        assert not report.is_valid
        assert report.out_of_range_container_ids == [chain[5].id]

    def test_reports_items_outside_last_level(self, db_session, hierarchy):
        assert hierarchy.activate(_by_name(hierarchy, "Simple (3 Levels)"))
        chain = _container_chain(db_session, 3)
        box_item = Item(name="Tape", container=chain[2])
        db_session.add(box_item)
        db_session.commit()
        assert hierarchy.validate_setup().is_valid

        assert hierarchy.activate(_by_name(hierarchy, DEFAULT_PRESET_NAME))
        report = hierarchy.validate_setup()

        assert not report.is_valid
        assert report.out_of_range_container_ids == []
        assert report.misplaced_item_ids == [box_item.id]

    def test_reports_missing_active_configuration(self, db_session):
        report = HierarchyManager(db_session).validate_setup()

        assert not report.is_valid
        assert report.active_configuration is None
