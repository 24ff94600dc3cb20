from typing import Dict, List, Optional

from clutterbug.models.hierarchy import HierarchyConfiguration, HierarchyLevel

# ============================================================================
# Built-in Hierarchy Presets
# ============================================================================
# Each level tuple: (name, plural_name, icon, color, dimension_unit)
PRESET_LEVELS: Dict[str, List[tuple]] = {
    "Workshop (5 Levels)": [
        ("Building", "Buildings", "building.2.fill", "blue", "ft"),
        ("Room", "Rooms", "rectangle.fill", "green", "ft"),
        ("Storage Area", "Storage Areas", "square.dashed", "orange", "in"),
        ("Storage Unit", "Storage Units", "cabinet.fill", "purple", "in"),
        ("Storage Detail", "Storage Details", "archivebox.fill", "red", "in"),
    ],
    "Home Organization (4 Levels)": [
        ("Home", "Homes", "house.fill", "blue", "ft"),
        ("Room", "Rooms", "door.left.hand.open", "green", "ft"),
        ("Furniture", "Furniture", "bed.double.fill", "orange", "in"),
        ("Drawer/Shelf", "Drawers/Shelves", "tray.2.fill", "purple", "in"),
    ],
    "Warehouse (5 Levels)": [
        ("Facility", "Facilities", "building.2.fill", "blue", "ft"),
        ("Zone", "Zones", "square.grid.3x3.fill", "green", "ft"),
        ("Aisle", "Aisles", "arrow.left.arrow.right", "orange", "ft"),
        ("Rack", "Racks", "square.stack.3d.up.fill", "purple", "in"),
        ("Bin", "Bins", "tray.fill", "red", "in"),
    ],
    "Simple (3 Levels)": [
        ("Location", "Locations", "house.fill", "blue", "ft"),
        ("Container", "Containers", "shippingbox.fill", "green", "in"),
        ("Section", "Sections", "tray.fill", "orange", "in"),
    ],
    "Office (3 Levels)": [
        ("Office", "Offices", "building.fill", "blue", "ft"),
        ("Workstation", "Workstations", "desktopcomputer", "green", "ft"),
        ("Storage", "Storage", "archivebox.fill", "orange", "in"),
    ],
}

# Preset activated on first launch (all presets are built-in defaults)
DEFAULT_PRESET_NAME = "Workshop (5 Levels)"

# ============================================================================
# Fallbacks for orders with no configured level
# ============================================================================
FALLBACK_ICON = "square.fill"
FALLBACK_COLOR = "blue"


def default_unit_for(order: int) -> str:
    return "ft" if order <= 2 else "in"


def build_preset(name: str, is_active: bool = False) -> HierarchyConfiguration:
    """
    Build an unsaved configuration for a named preset.

    :param name: Key of PRESET_LEVELS
    :param is_active: Initial activation flag
    :return: Transient HierarchyConfiguration with its levels attached
    """
    rows = PRESET_LEVELS[name]
    config = HierarchyConfiguration(
        name=name,
        max_levels=len(rows),
        is_default=True,
        is_active=is_active,
    )
    config.levels = [
        HierarchyLevel(
            order=index + 1,
            name=level_name,
            plural_name=plural,
            icon=icon,
            color=color,
            dimension_unit=unit,
        )
        for index, (level_name, plural, icon, color, unit) in enumerate(rows)
    ]
    return config


def build_default_presets(active_name: Optional[str] = DEFAULT_PRESET_NAME) -> List[HierarchyConfiguration]:
    """All five built-in presets, with active_name marked active."""
    return [build_preset(name, is_active=(name == active_name)) for name in PRESET_LEVELS]
