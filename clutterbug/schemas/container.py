"""
Pydantic schemas for Container and Item
"""
from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field

ShapeType = Literal["rectangle", "circle", "triangle", "quadrilateral", "tee"]
PhotoMapPosition = Literal["corner", "center", "floating", "hidden"]
PhotoIconSize = Literal["small", "medium", "large"]
ItemCondition = Literal["New", "Like New", "Good", "Fair", "Poor", "For Parts"]


class ContainerCreate(BaseModel):
    """Schema for creating a container"""
    name: str = Field(..., min_length=1, max_length=200, description="Container name")
    level: int = Field(..., ge=1, description="Hierarchy level (1 = root)")
    parent_id: Optional[int] = Field(None, description="Parent container ID, omitted for root containers")
    purpose: Optional[str] = Field(None, description="What the container is used for")
    notes: Optional[str] = Field(None, description="Free-form notes")
    map_x: Optional[float] = Field(None, description="X position on the parent's map")
    map_y: Optional[float] = Field(None, description="Y position on the parent's map")
    shape_type: Optional[ShapeType] = Field(None, description="Map shape")


class ContainerUpdate(BaseModel):
    """Schema for updating a container (level and parent are fixed after creation)"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    purpose: Optional[str] = None
    notes: Optional[str] = None
    width: Optional[float] = Field(None, ge=0)
    length: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)
    side3: Optional[float] = Field(None, ge=0)
    side4: Optional[float] = Field(None, ge=0)
    shape_type: Optional[ShapeType] = None
    color_type: Optional[str] = Field(None, max_length=20)
    rotation: Optional[float] = Field(None, ge=0, lt=360)
    map_x: Optional[float] = None
    map_y: Optional[float] = None
    map_width: Optional[float] = Field(None, ge=0)
    map_height: Optional[float] = Field(None, ge=0)
    map_label: Optional[str] = Field(None, max_length=200)
    show_photo_on_map: Optional[bool] = None
    photo_map_position: Optional[PhotoMapPosition] = None
    photo_icon_size: Optional[PhotoIconSize] = None


class ItemCreate(BaseModel):
    """Schema for creating an item"""
    name: str = Field(..., min_length=1, max_length=200, description="Item name")
    height: float = Field(0.0, ge=0, description="Height in inches")
    width: float = Field(0.0, ge=0, description="Width in inches")
    length: float = Field(0.0, ge=0, description="Length in inches")
    category: str = Field("", max_length=100, description="Category, e.g. 'Tools'")
    quantity: int = Field(1, ge=1, description="Quantity on hand")
    notes: Optional[str] = None
    sku: Optional[str] = Field(None, max_length=100)
    condition: ItemCondition = Field("Good", description="Item condition")
    show_photo_on_map: bool = False
    photo_map_position: PhotoMapPosition = "floating"
    photo_icon_size: PhotoIconSize = "small"


class ItemUpdate(BaseModel):
    """Schema for updating an item"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    height: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    length: Optional[float] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=100)
    quantity: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    sku: Optional[str] = Field(None, max_length=100)
    condition: Optional[ItemCondition] = None
    show_photo_on_map: Optional[bool] = None
    photo_map_position: Optional[PhotoMapPosition] = None
    photo_icon_size: Optional[PhotoIconSize] = None


class ItemResponse(BaseModel):
    """Schema for item response"""
    id: int
    name: str
    container_id: int
    photo_identifier: Optional[str] = None
    height: float
    width: float
    length: float
    category: str
    quantity: int
    notes: Optional[str] = None
    sku: Optional[str] = None
    condition: str
    show_photo_on_map: bool
    photo_map_position: str
    photo_icon_size: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContainerResponse(BaseModel):
    """Schema for container response"""
    id: int
    name: str
    level: int
    parent_id: Optional[int] = None
    purpose: Optional[str] = None
    notes: Optional[str] = None
    width: float
    length: float
    height: float
    side3: Optional[float] = None
    side4: Optional[float] = None
    shape_type: str
    color_type: str
    rotation: float
    map_x: Optional[float] = None
    map_y: Optional[float] = None
    map_width: Optional[float] = None
    map_height: Optional[float] = None
    map_label: Optional[str] = None
    photo_identifier: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ContainerDetailResponse(ContainerResponse):
    """Container with resolved type, path and counts"""
    type_name: str
    can_contain_items: bool
    path: str
    measurement: str
    direct_item_count: int
    total_item_count: int
    child_ids: list[int] = Field(default_factory=list)


class DeletionResponse(BaseModel):
    """Everything removed by a cascade delete"""
    container_ids: list[int] = Field(default_factory=list)
    item_ids: list[int] = Field(default_factory=list)
    photo_identifiers: list[str] = Field(default_factory=list)


class SearchResultResponse(BaseModel):
    """Search hits with breadcrumb paths"""
    containers: list[ContainerResponse] = Field(default_factory=list)
    items: list[ItemResponse] = Field(default_factory=list)
    paths: dict[str, str] = Field(default_factory=dict, description="'container:<id>' / 'item:<id>' -> path")
