"""Product update (changelog) schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import Pagination, UpdateCategory, UpdateSource


class UpdateCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    category: UpdateCategory
    is_draft: bool = False


class UpdateEdit(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[UpdateCategory] = None


class UpdateFromFeedback(BaseModel):
    feedback_id: uuid.UUID
    category: UpdateCategory = UpdateCategory.IMPROVEMENT
    title: Optional[str] = None
    content: Optional[str] = None


class UpdateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    category: UpdateCategory
    source: UpdateSource
    feedback_id: Optional[uuid.UUID] = None
    is_published: bool
    published_at: Optional[datetime] = None
    created_by_id: uuid.UUID
    created_at: datetime


class UpdatePage(BaseModel):
    updates: List[UpdateRead]
    pagination: Pagination
