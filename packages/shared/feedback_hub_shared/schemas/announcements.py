"""Announcement schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import AnnouncementPriority, NaiveUTCDatetime


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    priority: AnnouncementPriority = AnnouncementPriority.MEDIUM
    department_id: Optional[uuid.UUID] = None
    is_active: bool = True
    scheduled_at: Optional[NaiveUTCDatetime] = None


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    priority: Optional[AnnouncementPriority] = None
    is_active: Optional[bool] = None
    scheduled_at: Optional[NaiveUTCDatetime] = None


class AnnouncementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    priority: AnnouncementPriority
    department_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    is_active: bool
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
