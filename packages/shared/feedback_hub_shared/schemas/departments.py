"""Department schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def split_keywords(value: Union[str, List[str], None]) -> List[str]:
    """Accept a comma separated string or a list; trim and drop empties."""
    if value is None:
        return []
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    allow_direct_feedback: bool = False
    manager_id: Optional[uuid.UUID] = None
    can_create_announcement: bool = False
    allowed_announcement_departments: List[uuid.UUID] = Field(default_factory=list)
    can_create_poll: bool = False
    allowed_poll_departments: List[uuid.UUID] = Field(default_factory=list)

    @field_validator("keywords", mode="before")
    @classmethod
    def _split(cls, v):
        return split_keywords(v)


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    keywords: Optional[List[str]] = None
    allow_direct_feedback: Optional[bool] = None
    manager_id: Optional[uuid.UUID] = None
    can_create_announcement: Optional[bool] = None
    allowed_announcement_departments: Optional[List[uuid.UUID]] = None
    can_create_poll: Optional[bool] = None
    allowed_poll_departments: Optional[List[uuid.UUID]] = None

    @field_validator("keywords", mode="before")
    @classmethod
    def _split(cls, v):
        if v is None:
            return None
        return split_keywords(v)


class DepartmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    allow_direct_feedback: bool = False
    manager_id: Optional[uuid.UUID] = None
    can_create_announcement: bool = False
    allowed_announcement_departments: List[uuid.UUID] = Field(default_factory=list)
    can_create_poll: bool = False
    allowed_poll_departments: List[uuid.UUID] = Field(default_factory=list)
    user_count: int = 0
    created_at: datetime
    updated_at: datetime
