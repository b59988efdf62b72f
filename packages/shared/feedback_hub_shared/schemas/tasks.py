"""Task-related Pydantic schemas shared between server and clients."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import Pagination, TaskPriority, TaskStatus


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    department_id: Optional[uuid.UUID] = None
    feedback_id: Optional[uuid.UUID] = None
    assignee_ids: List[uuid.UUID] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    assignee_ids: Optional[List[uuid.UUID]] = None
    forward_to_department_id: Optional[uuid.UUID] = None


class TaskCommentRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: datetime


class TaskRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    department_id: Optional[uuid.UUID] = None
    feedback_id: Optional[uuid.UUID] = None
    created_by_id: Optional[uuid.UUID] = None
    assignee_ids: List[uuid.UUID] = Field(default_factory=list)
    comments: List[TaskCommentRead] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TaskPage(BaseModel):
    """Paginated task listing (returned when `page` is supplied)."""
    tasks: List[TaskRead]
    pagination: Pagination
