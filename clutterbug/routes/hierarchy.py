"""
Hierarchy configuration routes
"""
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Path, status

from clutterbug.services.deps import get_hierarchy_manager
from clutterbug.services.hierarchy_manager import HierarchyManager
from clutterbug.schemas.hierarchy import (
    HierarchyConfigurationCreate,
    HierarchyConfigurationResponse,
    HierarchyConfigurationListResponse,
    LevelDescriptorResponse,
    SetupReportResponse,
)

router = APIRouter(prefix="/hierarchies", tags=["hierarchies"])


@router.get(
    "",
    response_model=HierarchyConfigurationListResponse,
    summary="Get all hierarchy configurations",
    description="Retrieve every stored configuration, built-in presets included"
)
def get_configurations(hierarchy: HierarchyManager = Depends(get_hierarchy_manager)):
    """
    Get all configurations

    Returns the configurations and the total count
    """
    try:
        configurations = hierarchy.all_configurations()
        return HierarchyConfigurationListResponse(
            total=len(configurations),
            configurations=configurations
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve configurations: {str(e)}"
        )


@router.post(
    "",
    response_model=HierarchyConfigurationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a custom hierarchy",
    description="Create a user-defined configuration with 2-6 levels"
)
def create_configuration(
    configuration_data: HierarchyConfigurationCreate,
    activate: bool = False,
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    """
    Create a custom configuration

    - **name**: Configuration name
    - **levels**: Ordered levels, top level first
    - **activate**: Switch to the new configuration after saving

    Returns 409 when activation is refused; the configuration stays saved.
    """
    try:
        config = hierarchy.create_configuration(configuration_data, activate=activate)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create configuration: {str(e)}"
        )

    if activate and not config.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Configuration '{config.name}' was saved with ID {config.id} "
                f"but cannot be activated with the current containers"
            )
        )
    return config


@router.get(
    "/active",
    response_model=HierarchyConfigurationResponse,
    summary="Get the active configuration"
)
def get_active_configuration(hierarchy: HierarchyManager = Depends(get_hierarchy_manager)):
    config = hierarchy.active_configuration()
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active hierarchy configuration"
        )
    return config


@router.get(
    "/active/levels/{order}",
    response_model=LevelDescriptorResponse,
    summary="Get level metadata",
    description="Resolved display metadata for a level of the active configuration; generic for unconfigured levels"
)
def get_level_metadata(
    order: int = Path(..., ge=1),
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    descriptor = hierarchy.level_metadata(order)
    return LevelDescriptorResponse(
        **asdict(descriptor),
        is_last_level=hierarchy.is_last_level(order)
    )


@router.get(
    "/validate",
    response_model=SetupReportResponse,
    summary="Validate hierarchy setup",
    description="Check the active configuration and report containers deeper than it allows and items outside last-level containers"
)
def validate_setup(hierarchy: HierarchyManager = Depends(get_hierarchy_manager)):
    report = hierarchy.validate_setup()
    return SetupReportResponse(is_valid=report.is_valid, **asdict(report))


@router.post(
    "/{configuration_id}/activate",
    response_model=HierarchyConfigurationResponse,
    summary="Activate a configuration",
    description="Make the configuration the single active one"
)
def activate_configuration(
    configuration_id: int,
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    """
    Activate a configuration

    Refused with 409 when existing containers are deeper than the configuration allows.
    """
    config = hierarchy.get_configuration(configuration_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Configuration with ID {configuration_id} not found"
        )

    if not hierarchy.activate(config):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Configuration '{config.name}' cannot be activated with the current containers"
        )
    return config


@router.delete(
    "/{configuration_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a configuration",
    description="Delete a custom configuration; active and built-in configurations are kept"
)
def delete_configuration(
    configuration_id: int,
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    config = hierarchy.get_configuration(configuration_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Configuration with ID {configuration_id} not found"
        )

    if not hierarchy.delete_configuration(config):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Configuration '{config.name}' is active or built-in and cannot be deleted"
        )
    return None
