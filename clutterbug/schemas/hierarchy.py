"""
Pydantic schemas for hierarchy configurations and levels
"""
from datetime import datetime
from typing import Optional, Literal
from pydantic import BaseModel, Field, field_validator

from clutterbug.models.hierarchy import MIN_LEVELS, MAX_LEVELS


class HierarchyLevelCreate(BaseModel):
    """Schema for one level of a custom hierarchy; order comes from list position"""
    name: str = Field(..., min_length=1, max_length=100, description="Level name, e.g. 'Cabinet'")
    plural_name: Optional[str] = Field(None, max_length=100, description="Plural name, defaults to name + 's'")
    icon: str = Field("square.fill", max_length=100, description="Icon token")
    color: str = Field("blue", max_length=30, description="Color token")
    dimension_unit: Optional[Literal["ft", "in"]] = Field(None, description="Default unit, ft for the first two levels")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Level name must not be blank")
        return value


class HierarchyConfigurationCreate(BaseModel):
    """Schema for creating a custom hierarchy configuration"""
    name: str = Field(..., min_length=1, max_length=100, description="Configuration name")
    levels: list[HierarchyLevelCreate] = Field(
        ...,
        min_length=MIN_LEVELS,
        max_length=MAX_LEVELS,
        description=f"Ordered levels, top first ({MIN_LEVELS}-{MAX_LEVELS})"
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Configuration name must not be blank")
        return value


class HierarchyLevelResponse(BaseModel):
    """Schema for level response"""
    id: int
    order: int
    name: str
    plural_name: str
    icon: str
    color: str
    dimension_unit: str
    is_large_scale: bool
    short_name: str

    class Config:
        from_attributes = True


class HierarchyConfigurationResponse(BaseModel):
    """Schema for configuration response"""
    id: int
    name: str
    max_levels: int
    is_default: bool
    is_active: bool
    created_at: datetime
    levels: list[HierarchyLevelResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class HierarchyConfigurationListResponse(BaseModel):
    """Schema for list of configurations"""
    total: int = Field(..., description="Total number of configurations")
    configurations: list[HierarchyConfigurationResponse] = Field(..., description="List of configurations")


class LevelDescriptorResponse(BaseModel):
    """Resolved display metadata for a level"""
    order: int
    name: str
    plural_name: str
    icon: str
    color: str
    unit: str
    is_large_scale: bool
    short_name: str
    is_last_level: bool


class SetupReportResponse(BaseModel):
    """Result of validating the active hierarchy against stored containers"""
    is_valid: bool
    active_configuration: Optional[str] = None
    configuration_count: int
    container_count: int
    item_count: int
    out_of_range_container_ids: list[int] = Field(default_factory=list)
    misplaced_item_ids: list[int] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)
