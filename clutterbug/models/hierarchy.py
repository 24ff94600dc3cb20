"""
Database models for HierarchyConfiguration and HierarchyLevel
"""
from typing import Optional

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from clutterbug.core.database import Base

MIN_LEVELS = 2
MAX_LEVELS = 6

# Orders at or below this use large-scale units (feet)
LARGE_SCALE_MAX_ORDER = 2

SHORT_NAMES = {
    "building": "BLDG",
    "room": "ROOM",
    "storage area": "AREA",
    "area": "AREA",
    "storage unit": "UNIT",
    "unit": "UNIT",
    "storage detail": "SHELF",
    "detail": "SHELF",
    "shelf": "SHELF",
}


def short_name_for(name: str) -> str:
    """Abbreviated label used on map badges, e.g. "Building" -> "BLDG"."""
    return SHORT_NAMES.get(name.lower(), name[:4].upper())


class HierarchyConfiguration(Base):
    """HierarchyConfiguration model - a named, ordered set of levels (e.g. "Workshop (5 Levels)")"""
    __tablename__ = "hierarchy_configuration"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    max_levels = Column(Integer, nullable=False)  # 2-6
    is_default = Column(Boolean, nullable=False, default=False)  # built-in preset, never deleted
    is_active = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)

    levels = relationship(
        "HierarchyLevel",
        back_populates="configuration",
        cascade="all, delete-orphan",
        order_by="HierarchyLevel.order",
        passive_deletes=True,
    )

    def level(self, order: int) -> Optional["HierarchyLevel"]:
        """Level at the given 1-based order, or None"""
        for level in self.levels:
            if level.order == order:
                return level
        return None

    def can_contain(self, parent_level: int, child_level: int) -> bool:
        """Only the immediate next level may be nested, and never past max_levels."""
        if not (parent_level < child_level <= self.max_levels):
            return False
        return child_level == parent_level + 1

    def is_last_level(self, level: int) -> bool:
        return level >= self.max_levels

    @property
    def sorted_levels(self) -> list["HierarchyLevel"]:
        return sorted(self.levels, key=lambda level: level.order)

    def __repr__(self):
        return f"<HierarchyConfiguration(id={self.id}, name='{self.name}', max_levels={self.max_levels}, is_active={self.is_active})>"


class HierarchyLevel(Base):
    """HierarchyLevel model - one rung of a configuration (e.g. order 2 = "Room")"""
    __tablename__ = "hierarchy_level"
    __table_args__ = (
        UniqueConstraint("configuration_id", "level_order", name="uq_hierarchy_level_order"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    configuration_id = Column(Integer, ForeignKey("hierarchy_configuration.id", ondelete="CASCADE"), nullable=False)
    order = Column("level_order", Integer, nullable=False)  # 1 = top level
    name = Column(String(100), nullable=False)  # e.g. "Building", "Cabinet"
    plural_name = Column(String(100), nullable=False)  # e.g. "Buildings", "Cabinets"
    icon = Column(String(100), nullable=False)  # icon token, e.g. "building.2.fill"
    color = Column(String(30), nullable=False)  # color token, e.g. "blue"
    dimension_unit = Column(String(10), nullable=False, default="ft")  # "ft" or "in"

    configuration = relationship("HierarchyConfiguration", back_populates="levels")

    @property
    def is_large_scale(self) -> bool:
        return self.order <= LARGE_SCALE_MAX_ORDER

    @property
    def short_name(self) -> str:
        return short_name_for(self.name)

    def __repr__(self):
        return f"<HierarchyLevel(id={self.id}, order={self.order}, name='{self.name}')>"
