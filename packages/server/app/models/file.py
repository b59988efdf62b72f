"""Shared folder and shared file models."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class SharedFolder(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "shared_folders"

    name: str = Field(nullable=False)
    parent_id: Optional[uuid.UUID] = Field(default=None, foreign_key="shared_folders.id", index=True)
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)  # null = organization
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)


class SharedFile(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "shared_files"

    original_name: str = Field(nullable=False)
    stored_name: str = Field(nullable=False)
    storage_key: str = Field(nullable=False, unique=True)
    mime_type: str = Field(nullable=False)
    size: int = Field(nullable=False)  # bytes
    extension: str = Field(nullable=False)
    folder_id: Optional[uuid.UUID] = Field(default=None, foreign_key="shared_folders.id", index=True)
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)
    uploaded_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    tags: List[str] = Field(default_factory=list, sa_type=sa.JSON)
    download_count: int = Field(default=0, nullable=False)
    deleted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(), index=True)
