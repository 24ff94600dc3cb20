"""
Pydantic schemas for photo storage diagnostics
"""
from pydantic import BaseModel, Field


class PhotoUploadResponse(BaseModel):
    """Identifier assigned to an uploaded photo"""
    photo_identifier: str


class PhotoStorageInfoResponse(BaseModel):
    """Filesystem accounting for originals and thumbnails"""
    total_bytes: int
    original_bytes: int
    thumbnail_bytes: int
    photo_count: int
    thumbnail_count: int
    compression_ratio: float
    formatted_total_size: str


class MissingPhotoResponse(BaseModel):
    identifier: str
    owner_name: str
    owner_type: str


class PhotoValidationReportResponse(BaseModel):
    """Cross-reference of entity photo identifiers against files on disk"""
    valid_photos: list[str] = Field(default_factory=list)
    missing_photos: list[MissingPhotoResponse] = Field(default_factory=list)
    orphaned_photos: list[str] = Field(default_factory=list)
    total_photos: int
    has_issues: bool


class PhotoCleanupResponse(BaseModel):
    removed_files: int


class PhotoMigrationResponse(BaseModel):
    """Statistics of a thumbnail migration run"""
    dry_run: bool
    total: int
    migrated: int
    already_current: int
    failed: int
