"""Task model with assignments and comments."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    status: str = Field(nullable=False, default="PENDING", index=True)  # PENDING | IN_PROGRESS | COMPLETED | FORWARDED
    priority: str = Field(nullable=False, default="MEDIUM")  # LOW | MEDIUM | HIGH
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)
    feedback_id: Optional[uuid.UUID] = Field(default=None, foreign_key="feedbacks.id", index=True)
    created_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())


class TaskAssignment(SQLModel, table=True):
    __tablename__ = "task_assignments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    assigned_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())


class TaskComment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "task_comments"

    task_id: uuid.UUID = Field(foreign_key="tasks.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
