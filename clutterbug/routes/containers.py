"""
Container and item routes
"""
from typing import Optional, List

from sqlalchemy.orm import Session
from fastapi import APIRouter, Depends, HTTPException, Query, status

from clutterbug.core.database import get_db
from clutterbug.models.container import Container
from clutterbug.services.container_service import ContainerService
from clutterbug.services.deps import get_hierarchy_manager, get_store
from clutterbug.services.hierarchy_manager import HierarchyManager
from clutterbug.storage.photo_store import PhotoStore
from clutterbug.schemas.container import (
    ContainerCreate,
    ContainerUpdate,
    ContainerResponse,
    ContainerDetailResponse,
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    DeletionResponse,
    SearchResultResponse,
)

router = APIRouter(tags=["containers"])


def _container_detail(container: Container, hierarchy: HierarchyManager) -> ContainerDetailResponse:
    container_type = hierarchy.container_type(container)
    return ContainerDetailResponse(
        **ContainerResponse.model_validate(container).model_dump(),
        type_name=container_type.descriptor.name,
        can_contain_items=container_type.can_contain_items,
        path=ContainerService.path_string(container),
        measurement=ContainerService.measurement_text(container, hierarchy),
        direct_item_count=ContainerService.direct_item_count(container),
        total_item_count=ContainerService.total_item_count(container),
        child_ids=[child.id for child in container.children],
    )


def _get_container_or_404(db: Session, container_id: int) -> Container:
    container = ContainerService.get_container(db, container_id)
    if not container:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Container with ID {container_id} not found"
        )
    return container


@router.get(
    "/containers",
    response_model=List[ContainerResponse],
    summary="List containers",
    description="Root containers, or the children of parent_id"
)
def get_containers(parent_id: Optional[int] = None, db: Session = Depends(get_db)):
    return ContainerService.list_containers(db, parent_id)


@router.post(
    "/containers",
    response_model=ContainerDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a container",
    description="Create a container at the level allowed by the active hierarchy"
)
def create_container(
    container_data: ContainerCreate,
    db: Session = Depends(get_db),
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    """
    Create a container

    - **name**: Container name
    - **level**: 1 for a root, otherwise the parent's level + 1
    - **parent_id**: Parent container (omit for a root)
    - **map_x / map_y**: Optional map position; placed on a grid when omitted

    Returns 409 when the hierarchy does not allow the level at this position.
    """
    parent = None
    if container_data.parent_id is not None:
        parent = _get_container_or_404(db, container_data.parent_id)

    try:
        result = ContainerService.create_container(
            db,
            name=container_data.name,
            level=container_data.level,
            parent=parent,
            hierarchy=hierarchy,
            map_x=container_data.map_x,
            map_y=container_data.map_y,
            purpose=container_data.purpose,
            notes=container_data.notes,
            shape_type=container_data.shape_type,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create container: {str(e)}"
        )

    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=result.reason
        )
    return _container_detail(result.container, hierarchy)


@router.get(
    "/containers/{container_id}",
    response_model=ContainerDetailResponse,
    summary="Get container by ID",
    description="Container with its resolved type, breadcrumb path and item counts"
)
def get_container(
    container_id: int,
    db: Session = Depends(get_db),
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    container = _get_container_or_404(db, container_id)
    return _container_detail(container, hierarchy)


@router.patch(
    "/containers/{container_id}",
    response_model=ContainerDetailResponse,
    summary="Update container"
)
def update_container(
    container_id: int,
    container_data: ContainerUpdate,
    db: Session = Depends(get_db),
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    container = _get_container_or_404(db, container_id)
    try:
        container = ContainerService.update_container(db, container, container_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return _container_detail(container, hierarchy)


@router.delete(
    "/containers/{container_id}",
    response_model=DeletionResponse,
    summary="Delete container",
    description="Delete a container with every descendant container, item and photo"
)
def delete_container(
    container_id: int,
    db: Session = Depends(get_db),
    store: PhotoStore = Depends(get_store)
):
    container = _get_container_or_404(db, container_id)
    try:
        result = ContainerService.delete_container(db, container, store)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete container: {str(e)}"
        )
    return DeletionResponse(
        container_ids=result.container_ids,
        item_ids=result.item_ids,
        photo_identifiers=result.photo_identifiers,
    )


@router.get(
    "/containers/{container_id}/items",
    response_model=List[ItemResponse],
    summary="List items in a container",
    description="Direct items, or every item in the subtree with recursive=true"
)
def get_container_items(container_id: int, recursive: bool = False, db: Session = Depends(get_db)):
    container = _get_container_or_404(db, container_id)
    if recursive:
        return ContainerService.all_items(container)
    return list(container.items)


@router.post(
    "/containers/{container_id}/items",
    response_model=ItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an item",
    description="Create an item in a container at the deepest level of the active hierarchy"
)
def create_item(
    container_id: int,
    item_data: ItemCreate,
    db: Session = Depends(get_db),
    hierarchy: HierarchyManager = Depends(get_hierarchy_manager)
):
    """
    Create an item

    Returns 409 when the container is not at the terminal level.
    """
    container = _get_container_or_404(db, container_id)
    try:
        result = ContainerService.create_item(db, container, hierarchy, item_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    if not result.ok:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=result.reason
        )
    return result.item


@router.get(
    "/items/{item_id}",
    response_model=ItemResponse,
    summary="Get item by ID"
)
def get_item(item_id: int, db: Session = Depends(get_db)):
    item = ContainerService.get_item(db, item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item with ID {item_id} not found"
        )
    return item


@router.patch(
    "/items/{item_id}",
    response_model=ItemResponse,
    summary="Update item"
)
def update_item(item_id: int, item_data: ItemUpdate, db: Session = Depends(get_db)):
    item = ContainerService.get_item(db, item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item with ID {item_id} not found"
        )
    try:
        return ContainerService.update_item(db, item, item_data)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.delete(
    "/items/{item_id}",
    response_model=DeletionResponse,
    summary="Delete item",
    description="Delete an item and its photo"
)
def delete_item(item_id: int, db: Session = Depends(get_db), store: PhotoStore = Depends(get_store)):
    item = ContainerService.get_item(db, item_id)
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item with ID {item_id} not found"
        )
    try:
        result = ContainerService.delete_item(db, item, store)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    return DeletionResponse(item_ids=result.item_ids, photo_identifiers=result.photo_identifiers)


@router.get(
    "/search",
    response_model=SearchResultResponse,
    summary="Search containers and items",
    description="Case-insensitive name search with breadcrumb paths"
)
def search(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    containers, items = ContainerService.search(db, q)
    paths = {f"container:{container.id}": ContainerService.path_string(container) for container in containers}
    paths.update({f"item:{item.id}": ContainerService.item_path(item) for item in items})
    return SearchResultResponse(containers=containers, items=items, paths=paths)
