"""
Services package - High-level business logic layer
"""
from clutterbug.services.hierarchy_manager import (
    HierarchyManager,
    LevelDescriptor,
    ContainerTypeInfo,
    SetupReport,
)
from clutterbug.services.container_service import (
    ContainerService,
    ContainerCreateResult,
    ItemCreateResult,
    DeletionResult,
)

__all__ = [
    "HierarchyManager",
    "LevelDescriptor",
    "ContainerTypeInfo",
    "SetupReport",
    "ContainerService",
    "ContainerCreateResult",
    "ItemCreateResult",
    "DeletionResult",
]
