"""
Hierarchy manager - active configuration resolver and containment rules

The manager is a context object bound to one database session. Every
container/item operation receives it explicitly; there is no process-wide
"current hierarchy" object. The active configuration is read from the store
on each call, so a deleted or switched configuration is never served stale.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clutterbug.core.hierarchy_presets import (
    DEFAULT_PRESET_NAME,
    FALLBACK_COLOR,
    FALLBACK_ICON,
    build_default_presets,
    build_preset,
    default_unit_for,
)
from clutterbug.models.container import Container
from clutterbug.models.hierarchy import (
    HierarchyConfiguration,
    HierarchyLevel,
    LARGE_SCALE_MAX_ORDER,
    short_name_for,
)
from clutterbug.models.item import Item
from clutterbug.schemas.hierarchy import HierarchyConfigurationCreate

logger = logging.getLogger(__name__)

# Seeding must not interleave between sessions
_BOOTSTRAP_LOCK = threading.Lock()


@dataclass(frozen=True)
class LevelDescriptor:
    """Resolved display metadata for one level order"""
    order: int
    name: str
    plural_name: str
    icon: str
    color: str
    unit: str
    is_large_scale: bool
    short_name: str


@dataclass(frozen=True)
class ContainerTypeInfo:
    """A container's resolved type under the active configuration"""
    descriptor: LevelDescriptor
    can_contain_items: bool

    @property
    def level(self) -> int:
        return self.descriptor.order

    @property
    def label(self) -> str:
        return f"{self.descriptor.name} (Level {self.descriptor.order})"


@dataclass
class SetupReport:
    """Consistency of the active configuration and the stored containers"""
    active_configuration: Optional[str] = None
    configuration_count: int = 0
    container_count: int = 0
    item_count: int = 0
    out_of_range_container_ids: List[int] = field(default_factory=list)
    misplaced_item_ids: List[int] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


class HierarchyManager:
    """
    Resolves the active HierarchyConfiguration and enforces the adjacency rule

    Storage failures never propagate out of the read-side accessors: they are
    logged, the session is rolled back and the built-in Workshop preset is
    used as an in-memory fallback.
    """

    def __init__(self, db: Session):
        self.db = db
        self._fallback: Optional[HierarchyConfiguration] = None

    # ------------------------------------------------------------------
    # Active configuration
    # ------------------------------------------------------------------

    def active_configuration(self) -> Optional[HierarchyConfiguration]:
        """Currently active configuration, or None before bootstrap"""
        try:
            return self.db.query(HierarchyConfiguration)\
                .filter(HierarchyConfiguration.is_active.is_(True))\
                .order_by(HierarchyConfiguration.id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error loading active configuration: {e}")
            self.db.rollback()
            return None

    def effective_configuration(self) -> HierarchyConfiguration:
        """Active configuration, falling back to an unsaved Workshop preset"""
        config = self.active_configuration()
        if config is not None:
            return config
        if self._fallback is None:
            logger.warning("No active hierarchy configuration, using built-in Workshop preset")
            self._fallback = build_preset(DEFAULT_PRESET_NAME, is_active=True)
        return self._fallback

    def all_configurations(self) -> List[HierarchyConfiguration]:
        try:
            return self.db.query(HierarchyConfiguration).order_by(HierarchyConfiguration.id).all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching configurations: {e}")
            self.db.rollback()
            return []

    def get_configuration(self, configuration_id: int) -> Optional[HierarchyConfiguration]:
        try:
            return self.db.query(HierarchyConfiguration)\
                .filter(HierarchyConfiguration.id == configuration_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching configuration {configuration_id}: {e}")
            self.db.rollback()
            return None

    def ensure_defaults_exist(self) -> Optional[HierarchyConfiguration]:
        """
        Idempotent bootstrap

        - Empty store: seed the five presets and activate Workshop, one commit
        - Configurations but none active: activate Workshop, else any built-in
          preset, else the oldest configuration
        - More than one active: keep the oldest active, deactivate the rest

        Returns:
            The active configuration, or None if storage failed
        """
        with _BOOTSTRAP_LOCK:
            try:
                configs = self.db.query(HierarchyConfiguration)\
                    .order_by(HierarchyConfiguration.id).all()

                if not configs:
                    presets = build_default_presets(active_name=DEFAULT_PRESET_NAME)
                    self.db.add_all(presets)
                    self.db.commit()
                    logger.info(f"Default hierarchy configurations created ({len(presets)} presets)")
                    return self.active_configuration()

                active = [config for config in configs if config.is_active]
                if len(active) == 1:
                    return active[0]

                if len(active) > 1:
                    logger.warning(f"Found {len(active)} active configurations, keeping '{active[0].name}'")
                    for extra in active[1:]:
                        extra.is_active = False
                    self.db.commit()
                    return active[0]

                target = self._pick_bootstrap_target(configs)
                target.is_active = True
                self.db.commit()
                logger.info(f"Activated hierarchy configuration: {target.name}")
                return target

            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error ensuring default configurations: {e}", exc_info=True)
                return None

    @staticmethod
    def _pick_bootstrap_target(configs: List[HierarchyConfiguration]) -> HierarchyConfiguration:
        for config in configs:
            if config.is_default and config.name == DEFAULT_PRESET_NAME:
                return config
        for config in configs:
            if config.is_default:
                return config
        return configs[0]

    def activate(self, configuration: HierarchyConfiguration) -> bool:
        """
        Make configuration the single active one

        Deactivation of the previous configuration and activation of the new
        one are committed together. Refused when stored containers sit deeper
        than the configuration allows.

        Returns:
            True if the configuration is active afterwards
        """
        if configuration.id is None:
            logger.error(f"Cannot activate unsaved configuration '{configuration.name}'")
            return False

        deepest = self.deepest_container_level()
        if deepest > configuration.max_levels:
            logger.warning(
                f"Refusing to activate '{configuration.name}': containers exist at level {deepest}, "
                f"configuration allows {configuration.max_levels}"
            )
            return False

        try:
            currently_active = self.db.query(HierarchyConfiguration)\
                .filter(HierarchyConfiguration.is_active.is_(True)).all()
            for config in currently_active:
                if config.id != configuration.id:
                    config.is_active = False
            configuration.is_active = True
            self.db.commit()
            logger.info(f"Switched to hierarchy: {configuration.name}")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error switching configuration: {e}", exc_info=True)
            return False

    def create_configuration(
        self,
        data: HierarchyConfigurationCreate,
        activate: bool = False
    ) -> HierarchyConfiguration:
        """
        Persist a user-defined configuration

        Args:
            data: Validated configuration (2-6 levels, top level first)
            activate: Switch to the new configuration after saving

        Returns:
            The saved configuration; is_active tells whether a requested
            activation went through

        Raises:
            ValueError: If the configuration cannot be saved
        """
        try:
            config = HierarchyConfiguration(
                name=data.name,
                max_levels=len(data.levels),
                is_default=False,
                is_active=False,
            )
            config.levels = [
                HierarchyLevel(
                    order=index + 1,
                    name=level.name,
                    plural_name=level.plural_name or f"{level.name}s",
                    icon=level.icon,
                    color=level.color,
                    dimension_unit=level.dimension_unit or default_unit_for(index + 1),
                )
                for index, level in enumerate(data.levels)
            ]
            self.db.add(config)
            self.db.commit()
            self.db.refresh(config)
            logger.info(f"Custom hierarchy '{config.name}' saved with {config.max_levels} levels")
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ValueError(f"Failed to save configuration: {str(e)}")

        if activate and not self.activate(config):
            logger.warning(f"Custom hierarchy '{config.name}' saved but left inactive")
        return config

    def delete_configuration(self, configuration: HierarchyConfiguration) -> bool:
        """Delete a configuration and its levels; active and built-in ones are kept"""
        if configuration.is_active:
            logger.warning(f"Cannot delete active configuration '{configuration.name}'")
            return False
        if configuration.is_default:
            logger.warning(f"Cannot delete built-in configuration '{configuration.name}'")
            return False

        try:
            self.db.delete(configuration)
            self.db.commit()
            logger.info(f"Deleted hierarchy configuration: {configuration.name}")
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting configuration: {e}", exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def max_levels(self) -> int:
        return self.effective_configuration().max_levels

    def can_contain(self, parent_level: int, child_level: int) -> bool:
        return self.effective_configuration().can_contain(parent_level, child_level)

    def is_last_level(self, level: int) -> bool:
        return self.effective_configuration().is_last_level(level)

    def level_metadata(self, order: int) -> LevelDescriptor:
        """Display metadata for a level order; generic "Level N" if unconfigured"""
        level = self.effective_configuration().level(order)
        if level is None:
            name = f"Level {order}"
            return LevelDescriptor(
                order=order,
                name=name,
                plural_name=f"{name}s",
                icon=FALLBACK_ICON,
                color=FALLBACK_COLOR,
                unit=default_unit_for(order),
                is_large_scale=order <= LARGE_SCALE_MAX_ORDER,
                short_name=short_name_for(name),
            )
        return LevelDescriptor(
            order=level.order,
            name=level.name,
            plural_name=level.plural_name,
            icon=level.icon,
            color=level.color,
            unit=level.dimension_unit,
            is_large_scale=level.is_large_scale,
            short_name=level.short_name,
        )

    def container_type(self, container: Container) -> ContainerTypeInfo:
        return ContainerTypeInfo(
            descriptor=self.level_metadata(container.level),
            can_contain_items=self.is_last_level(container.level),
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def deepest_container_level(self) -> int:
        try:
            return self.db.query(func.max(Container.level)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Error reading container levels: {e}")
            self.db.rollback()
            return 0

    def validate_setup(self) -> SetupReport:
        """
        Check the active configuration against stored data

        Flags containers deeper than the configuration allows and items whose
        container is not at the last level, which happens after switching to
        a configuration with more levels.
        """
        report = SetupReport()
        try:
            report.configuration_count = self.db.query(HierarchyConfiguration).count()
            report.container_count = self.db.query(Container).count()
            report.item_count = self.db.query(Item).count()

            active = self.active_configuration()
            if active is None:
                report.issues.append("No active configuration set")
                return report
            report.active_configuration = active.name

            if not active.levels:
                report.issues.append("Active configuration has no levels defined")
            if active.max_levels != len(active.levels):
                report.issues.append(
                    f"Configuration mismatch: says {active.max_levels} levels but has {len(active.levels)}"
                )
            orders = [level.order for level in active.sorted_levels]
            if orders != list(range(1, len(orders) + 1)):
                report.issues.append(f"Level orders are not contiguous: {orders}")

            out_of_range = self.db.query(Container.id)\
                .filter(Container.level > active.max_levels)\
                .order_by(Container.id).all()
            report.out_of_range_container_ids = [row[0] for row in out_of_range]
            if report.out_of_range_container_ids:
                report.issues.append(
                    f"Found {len(report.out_of_range_container_ids)} containers with levels "
                    f"higher than current max ({active.max_levels})"
                )

            misplaced = self.db.query(Item.id)\
                .join(Container, Item.container_id == Container.id)\
                .filter(Container.level != active.max_levels)\
                .order_by(Item.id).all()
            report.misplaced_item_ids = [row[0] for row in misplaced]
            if report.misplaced_item_ids:
                report.issues.append(
                    f"Found {len(report.misplaced_item_ids)} items outside Level {active.max_levels} containers"
                )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error validating setup: {e}", exc_info=True)
            report.issues.append(f"Storage error during validation: {e}")

        return report
