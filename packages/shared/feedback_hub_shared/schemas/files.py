"""File sharing schemas: folders, files and share settings."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_FOLDER_DEPTH = 5


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None


class FolderUpdate(BaseModel):
    """Rename and/or move. `move` must be true for parent_id to apply (a null parent means root)."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    parent_id: Optional[uuid.UUID] = None
    move: bool = False


class FolderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    parent_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    created_at: datetime


class FileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    original_name: str
    stored_name: str
    mime_type: str
    size: int
    extension: str
    folder_id: Optional[uuid.UUID] = None
    department_id: Optional[uuid.UUID] = None
    uploaded_by_id: uuid.UUID
    tags: List[str] = Field(default_factory=list)
    download_count: int = 0
    deleted_at: Optional[datetime] = None
    created_at: datetime


class FileUpdate(BaseModel):
    original_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    folder_id: Optional[uuid.UUID] = None
    move: bool = False


class FileTagsUpdate(BaseModel):
    tags: List[str]


class FileShareSettings(BaseModel):
    max_file_size: int = Field(default=50, ge=1, description="Per-file limit in MB")
    max_total_storage_per_user: int = Field(
        default=1000, ge=0, description="Per-user quota in MB (0 = unlimited)"
    )
    allowed_file_types: List[str] = Field(
        default=[
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "application/vnd.ms-powerpoint",
            "application/vnd.openxmlformats-officedocument.presentationml.presentation",
            "text/plain",
            "text/csv",
            "image/jpeg",
            "image/png",
            "image/gif",
            "image/webp",
            "image/svg+xml",
            "application/zip",
            "application/x-rar-compressed",
            "application/x-7z-compressed",
            "application/json",
            "application/xml",
        ]
    )
    allowed_extensions: List[str] = Field(
        default=[
            ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
            ".txt", ".csv", ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
            ".zip", ".rar", ".7z", ".json", ".xml",
        ]
    )
    suggested_tags: List[str] = Field(
        default=["important", "urgent", "finance", "contracts", "reports", "documents"]
    )
