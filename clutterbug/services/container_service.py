"""
Container tree business logic - nested containers and the items they hold
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, List, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clutterbug.core.config import settings
from clutterbug.models.container import Container
from clutterbug.models.hierarchy import MAX_LEVELS
from clutterbug.models.item import Item
from clutterbug.schemas.container import ContainerUpdate, ItemCreate, ItemUpdate
from clutterbug.services.hierarchy_manager import HierarchyManager
from clutterbug.storage.photo_store import PhotoStore

logger = logging.getLogger(__name__)

# Default physical dimensions (width, length, height) in the level's unit
LARGE_SCALE_DIMENSIONS = (10.0, 12.0, 9.0)
SMALL_SCALE_DIMENSIONS = (12.0, 8.0, 6.0)

# Grid placement of new containers on the parent's map
GRID_COLUMNS = 3
GRID_SPACING = 50.0
DEFAULT_ORIGIN_X = 150.0
DEFAULT_ORIGIN_Y = 200.0
DEFAULT_MAP_WIDTH = 100.0
DEFAULT_MAP_HEIGHT = 80.0

# Attributes callers may set at creation time besides name/level/position
CREATE_ATTRIBUTES = {"purpose", "notes", "shape_type", "rotation", "side3", "side4", "map_label"}

PhotoEntity = Union[Container, Item]


@dataclass
class ContainerCreateResult:
    """Outcome of create_container; container is None when the hierarchy refused it"""
    container: Optional[Container] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.container is not None


@dataclass
class ItemCreateResult:
    """Outcome of create_item; item is None when the container cannot hold items"""
    item: Optional[Item] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.item is not None


@dataclass
class DeletionResult:
    """Everything removed by a delete, in traversal order"""
    container_ids: List[int] = field(default_factory=list)
    item_ids: List[int] = field(default_factory=list)
    photo_identifiers: List[str] = field(default_factory=list)

    def add_photo(self, identifier: Optional[str]):
        if identifier and identifier not in self.photo_identifiers:
            self.photo_identifiers.append(identifier)


class ContainerService:
    """
    Service for the container/item tree

    Every operation that depends on hierarchy rules takes the
    HierarchyManager for the current session as an explicit argument.
    """

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    @staticmethod
    def create_container(
        db: Session,
        name: str,
        level: int,
        parent: Optional[Container],
        hierarchy: HierarchyManager,
        map_x: Optional[float] = None,
        map_y: Optional[float] = None,
        **attributes
    ) -> ContainerCreateResult:
        """
        Create a container after checking it against the active hierarchy

        Args:
            db: Database session
            name: Container name
            level: Level of the new container (1 = root)
            parent: Parent container, None for a root
            hierarchy: Hierarchy manager for this session
            map_x, map_y: Explicit map position; grid placement when either is missing
            **attributes: Optional purpose, notes, shape_type, rotation, side3, side4, map_label

        Returns:
            ContainerCreateResult; ok is False with a reason when the level
            is not allowed at this position. Nothing is persisted in that case.

        Raises:
            ValueError: On unknown attributes or if saving fails
        """
        unknown = set(attributes) - CREATE_ATTRIBUTES
        if unknown:
            raise ValueError(f"Unknown container attributes: {', '.join(sorted(unknown))}")

        if parent is not None:
            if not hierarchy.can_contain(parent.level, level):
                reason = f"Level {parent.level} cannot contain Level {level}"
                logger.warning(f"Hierarchy error: {reason} (parent '{parent.name}')")
                return ContainerCreateResult(reason=reason)
        elif level != 1:
            reason = "Only Level 1 containers can be at root"
            logger.warning(f"Hierarchy error: {reason} (requested Level {level})")
            return ContainerCreateResult(reason=reason)

        metadata = hierarchy.level_metadata(level)
        width, length, height = LARGE_SCALE_DIMENSIONS if metadata.is_large_scale else SMALL_SCALE_DIMENSIONS
        x, y = ContainerService.default_position(db, parent, map_x, map_y)

        values = {
            "shape_type": "rectangle",
            "rotation": 0.0,
            "map_label": name,
        }
        values.update({key: value for key, value in attributes.items() if value is not None})

        try:
            container = Container(
                name=name,
                level=level,
                width=width,
                length=length,
                height=height,
                map_x=x,
                map_y=y,
                map_width=DEFAULT_MAP_WIDTH,
                map_height=DEFAULT_MAP_HEIGHT,
                color_type=metadata.color,
                parent=parent,
                **values
            )
            db.add(container)
            db.commit()
            db.refresh(container)
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to create container: {str(e)}")

        parent_note = f" in '{parent.name}'" if parent is not None else ""
        logger.info(f"Created {metadata.name}: '{name}' at Level {level}{parent_note}")
        return ContainerCreateResult(container=container)

    @staticmethod
    def default_position(
        db: Session,
        parent: Optional[Container],
        map_x: Optional[float] = None,
        map_y: Optional[float] = None
    ) -> Tuple[float, float]:
        """Explicit position if both coordinates are given, else the next slot of a 3-column grid"""
        if map_x is not None and map_y is not None:
            return map_x, map_y

        origin_x = parent.map_x if parent is not None and parent.map_x is not None else DEFAULT_ORIGIN_X
        origin_y = parent.map_y if parent is not None and parent.map_y is not None else DEFAULT_ORIGIN_Y

        if parent is not None:
            sibling_count = len(parent.children)
        else:
            sibling_count = db.query(Container).filter(Container.parent_id.is_(None)).count()

        row, col = divmod(sibling_count, GRID_COLUMNS)
        return origin_x + col * GRID_SPACING, origin_y + row * GRID_SPACING + GRID_SPACING

    @staticmethod
    def create_item(
        db: Session,
        container: Container,
        hierarchy: HierarchyManager,
        item_data: ItemCreate
    ) -> ItemCreateResult:
        """
        Create an item in a terminal-level container

        Returns:
            ItemCreateResult; ok is False when the container is not at the
            deepest configured level

        Raises:
            ValueError: If saving fails
        """
        if not hierarchy.is_last_level(container.level):
            terminal = hierarchy.level_metadata(hierarchy.max_levels())
            reason = (
                f"'{container.name}' is Level {container.level}; "
                f"items are stored in {terminal.plural_name} (Level {terminal.order})"
            )
            logger.warning(f"Hierarchy error: {reason}")
            return ItemCreateResult(reason=reason)

        try:
            item = Item(container=container, **item_data.model_dump())
            db.add(item)
            db.commit()
            db.refresh(item)
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to create item: {str(e)}")

        logger.info(f"Created item '{item.name}' in '{container.name}'")
        return ItemCreateResult(item=item)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    @staticmethod
    def update_container(db: Session, container: Container, container_data: ContainerUpdate) -> Container:
        """
        Update a container; level and parent cannot change

        Raises:
            ValueError: If the update fails (in-memory changes are rolled back)
        """
        try:
            for key, value in container_data.model_dump(exclude_unset=True).items():
                setattr(container, key, value)
            db.commit()
            db.refresh(container)
            return container
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to update container: {str(e)}")

    @staticmethod
    def update_item(db: Session, item: Item, item_data: ItemUpdate) -> Item:
        """
        Update an item

        Raises:
            ValueError: If the update fails (in-memory changes are rolled back)
        """
        try:
            for key, value in item_data.model_dump(exclude_unset=True).items():
                setattr(item, key, value)
            db.commit()
            db.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to update item: {str(e)}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_container(db: Session, container_id: int) -> Optional[Container]:
        return db.query(Container).filter(Container.id == container_id).first()

    @staticmethod
    def get_item(db: Session, item_id: int) -> Optional[Item]:
        return db.query(Item).filter(Item.id == item_id).first()

    @staticmethod
    def list_containers(db: Session, parent_id: Optional[int] = None) -> List[Container]:
        """Root containers, or the children of parent_id"""
        query = db.query(Container)
        if parent_id is None:
            query = query.filter(Container.parent_id.is_(None))
        else:
            query = query.filter(Container.parent_id == parent_id)
        return query.order_by(Container.id).all()

    @staticmethod
    def all_items(container: Container) -> List[Item]:
        """Direct items first, then each child's items recursively"""
        result = list(container.items)
        for child in container.children:
            result.extend(ContainerService.all_items(child))
        return result

    @staticmethod
    def total_item_count(container: Container) -> int:
        return len(ContainerService.all_items(container))

    @staticmethod
    def direct_item_count(container: Container) -> int:
        return len(container.items)

    @staticmethod
    def hierarchy_path(container: Container) -> List[Container]:
        """Containers from the root down to this one"""
        path = []
        seen = set()
        current = container
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            path.insert(0, current)
            current = current.parent
        return path

    @staticmethod
    def path_string(container: Container, separator: Optional[str] = None) -> str:
        """Breadcrumb, e.g. "Garage → Shelf → Top Bin" """
        separator = settings.PATH_SEPARATOR if separator is None else separator
        return separator.join(node.name for node in ContainerService.hierarchy_path(container))

    @staticmethod
    def root_container(container: Container) -> Container:
        return ContainerService.hierarchy_path(container)[0]

    @staticmethod
    def item_path(item: Item, separator: Optional[str] = None) -> str:
        if item.container is None:
            return "Unassigned"
        return ContainerService.path_string(item.container, separator)

    @staticmethod
    def nearest_container(item: Item, level: int) -> Optional[Container]:
        """Closest ancestor container of the item at the given level"""
        if item.container is None:
            return None
        for container in reversed(ContainerService.hierarchy_path(item.container)):
            if container.level == level:
                return container
        return None

    @staticmethod
    def all_sides(container: Container) -> List[float]:
        shape = container.shape_type or "rectangle"
        if shape == "quadrilateral":
            return [
                container.length,
                container.width,
                container.side3 if container.side3 is not None else container.length,
                container.side4 if container.side4 is not None else container.width,
            ]
        if shape == "triangle":
            return [container.length, container.width, container.side3 if container.side3 is not None else 5.0]
        if shape == "tee":
            return [
                container.length,
                container.width,
                container.side3 if container.side3 is not None else 4.0,
                container.side4 if container.side4 is not None else 2.0,
            ]
        return [container.length, container.width]

    @staticmethod
    def measurement_text(container: Container, hierarchy: HierarchyManager) -> str:
        """Shape-aware dimension label in the level's unit, e.g. "▭ 12ft × 10ft" """
        unit = hierarchy.level_metadata(container.level).unit
        sides = [f"{int(side)}{unit}" for side in ContainerService.all_sides(container)]
        shape = container.shape_type or "rectangle"

        if shape == "circle":
            return f"○ {int(container.width)}{unit} ⌀"
        if shape == "triangle":
            return f"△ {', '.join(sides)}"
        if shape == "quadrilateral":
            return f"◇ {', '.join(sides)}"
        if shape == "tee":
            return f"⊤ {sides[0]} × {sides[1]}"
        return f"▭ {sides[0]} × {sides[1]}"

    @staticmethod
    def search(db: Session, text: str, limit: int = 50) -> Tuple[List[Container], List[Item]]:
        """Case-insensitive name match over containers and items"""
        text = (text or "").strip()
        if not text:
            return [], []
        pattern = f"%{text}%"
        containers = db.query(Container).filter(Container.name.ilike(pattern))\
            .order_by(Container.name).limit(limit).all()
        items = db.query(Item).filter(Item.name.ilike(pattern))\
            .order_by(Item.name).limit(limit).all()
        return containers, items

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    @staticmethod
    def collect_subtree(container: Container) -> DeletionResult:
        """
        Walk a container's subtree and list every container, item and photo in it

        Raises:
            ValueError: If the tree is deeper than any configuration allows or loops
        """
        result = DeletionResult()
        visited = set()
        stack = [(container, 0)]

        while stack:
            node, depth = stack.pop()
            if depth >= MAX_LEVELS or id(node) in visited:
                raise ValueError(f"Container tree under '{container.name}' is malformed (depth {depth})")
            visited.add(id(node))

            result.container_ids.append(node.id)
            result.add_photo(node.photo_identifier)
            for item in node.items:
                result.item_ids.append(item.id)
                result.add_photo(item.photo_identifier)

            for child in reversed(node.children):
                stack.append((child, depth + 1))

        return result

    @staticmethod
    def delete_container(
        db: Session,
        container: Container,
        photo_store: Optional[PhotoStore] = None
    ) -> DeletionResult:
        """
        Delete a container with all descendant containers, their items and photos

        The database delete is committed first; photo files are removed
        afterwards. If file removal is interrupted, the leftovers are orphans
        that PhotoStore.cleanup_orphans reclaims.

        Returns:
            DeletionResult listing removed container/item ids and photo identifiers

        Raises:
            ValueError: If the delete fails
        """
        result = ContainerService.collect_subtree(container)
        name = container.name

        try:
            db.delete(container)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to delete container: {str(e)}")

        logger.info(
            f"Deleted container '{name}': {len(result.container_ids)} containers, "
            f"{len(result.item_ids)} items, {len(result.photo_identifiers)} photos"
        )

        if photo_store is not None:
            for identifier in result.photo_identifiers:
                photo_store.delete(identifier)

        return result

    @staticmethod
    def delete_item(db: Session, item: Item, photo_store: Optional[PhotoStore] = None) -> DeletionResult:
        """
        Delete an item and its photo

        Raises:
            ValueError: If the delete fails
        """
        result = DeletionResult(item_ids=[item.id])
        name = item.name
        result.add_photo(item.photo_identifier)

        try:
            db.delete(item)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to delete item: {str(e)}")

        if photo_store is not None:
            for identifier in result.photo_identifiers:
                photo_store.delete(identifier)

        logger.info(f"Deleted item '{name}'")
        return result

    # ------------------------------------------------------------------
    # Photos
    # ------------------------------------------------------------------

    @staticmethod
    def attach_photo(
        db: Session,
        entity: PhotoEntity,
        image_data: bytes,
        photo_store: PhotoStore
    ) -> Optional[str]:
        """
        Save a photo for a container or item, replacing any previous one

        Returns:
            The new photo identifier, or None if the image could not be saved

        Raises:
            ValueError: If the entity update fails (the new files are removed)
        """
        identifier = str(uuid.uuid4())
        if not photo_store.save(identifier, image_data):
            logger.error(f"Could not save photo for '{entity.name}'")
            return None

        previous = entity.photo_identifier
        try:
            entity.photo_identifier = identifier
            db.commit()
            db.refresh(entity)
        except SQLAlchemyError as e:
            db.rollback()
            photo_store.delete(identifier)
            raise ValueError(f"Failed to attach photo: {str(e)}")

        if previous and previous != identifier:
            photo_store.delete(previous)

        logger.info(f"Attached photo {identifier} to '{entity.name}'")
        return identifier

    @staticmethod
    def clear_photo(db: Session, entity: PhotoEntity, photo_store: PhotoStore) -> bool:
        """
        Remove a container's or item's photo

        Returns:
            True if a photo was removed

        Raises:
            ValueError: If the entity update fails
        """
        previous = entity.photo_identifier
        if not previous:
            return False

        try:
            entity.photo_identifier = None
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise ValueError(f"Failed to clear photo: {str(e)}")

        photo_store.delete(previous)
        return True
