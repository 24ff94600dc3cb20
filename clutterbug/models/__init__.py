"""
Database models for ClutterBug
"""
from clutterbug.models.hierarchy import HierarchyConfiguration, HierarchyLevel
from clutterbug.models.container import Container
from clutterbug.models.item import Item

__all__ = [
    "HierarchyConfiguration",
    "HierarchyLevel",
    "Container",
    "Item",
]
