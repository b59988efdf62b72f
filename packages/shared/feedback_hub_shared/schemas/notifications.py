"""Notification schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import NotificationType


class NotificationCreate(BaseModel):
    user_id: uuid.UUID
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    type: NotificationType = NotificationType.INFO
    feedback_id: Optional[uuid.UUID] = None
    redirect_url: Optional[str] = None


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    feedback_id: Optional[uuid.UUID] = None
    title: str
    content: str
    type: NotificationType
    redirect_url: Optional[str] = None
    is_read: bool
    created_at: datetime


class NotificationList(BaseModel):
    notifications: List[NotificationRead]
    unread_count: int
