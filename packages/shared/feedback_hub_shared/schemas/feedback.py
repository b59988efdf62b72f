"""
Feedback schemas: submission, triage (status / forward / archive), chat
messages and manager checklists.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import FeedbackStatus


# ---------------------------------------------------------------------------
# Feedback CRUD
# ---------------------------------------------------------------------------

class FeedbackCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    type: str = "SUGGESTION"
    is_anonymous: bool = False
    department_id: uuid.UUID
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    images: List[str] = Field(default_factory=list)


class FeedbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    content: str
    type: str
    status: FeedbackStatus
    is_anonymous: bool
    rating: Optional[int] = None
    images: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    user_id: Optional[uuid.UUID] = None
    user_name: Optional[str] = None
    department_id: uuid.UUID
    department_name: Optional[str] = None
    forwarded_to_id: Optional[uuid.UUID] = None
    forwarded_at: Optional[datetime] = None
    completed_by_id: Optional[uuid.UUID] = None
    completed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    user_response: Optional[str] = None
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Triage
# ---------------------------------------------------------------------------

class FeedbackStatusUpdate(BaseModel):
    status: FeedbackStatus
    admin_notes: Optional[str] = None
    user_response: Optional[str] = None


class FeedbackForward(BaseModel):
    manager_id: uuid.UUID
    notes: Optional[str] = None


class FeedbackArchive(BaseModel):
    admin_notes: Optional[str] = None
    user_response: Optional[str] = None


class BulkComplete(BaseModel):
    ids: List[uuid.UUID]
    user_response: Optional[str] = None


# ---------------------------------------------------------------------------
# Messages & checklist
# ---------------------------------------------------------------------------

class MessageCreate(BaseModel):
    content: str = Field(min_length=1)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    feedback_id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class ChecklistItemCreate(BaseModel):
    title: str = Field(min_length=1)


class ChecklistItemUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    is_completed: Optional[bool] = None
    order: Optional[int] = None


class ChecklistItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    feedback_id: uuid.UUID
    title: str
    is_completed: bool
    order: int
    created_at: datetime
