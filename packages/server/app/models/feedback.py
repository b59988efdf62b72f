"""Feedback, feedback chat messages and manager checklist items."""

from datetime import datetime
from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Feedback(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "feedbacks"

    title: str = Field(nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    type: str = Field(nullable=False, default="SUGGESTION")
    status: str = Field(nullable=False, default="PENDING", index=True)
    is_anonymous: bool = Field(default=False, nullable=False)
    rating: Optional[int] = None
    images: List[str] = Field(default_factory=list, sa_type=sa.JSON)
    keywords: List[str] = Field(default_factory=list, sa_type=sa.JSON)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    department_id: uuid.UUID = Field(foreign_key="departments.id", nullable=False, index=True)
    forwarded_to_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    forwarded_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    completed_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    completed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    admin_notes: Optional[str] = Field(default=None, sa_type=sa.Text)
    user_response: Optional[str] = Field(default=None, sa_type=sa.Text)
    deleted_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(), index=True)


class FeedbackMessage(UUIDMixin, SQLModel, table=True):
    __tablename__ = "feedback_messages"

    feedback_id: uuid.UUID = Field(foreign_key="feedbacks.id", nullable=False, index=True)
    sender_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    is_read: bool = Field(default=False, nullable=False)
    read_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())


class ChecklistItem(UUIDMixin, SQLModel, table=True):
    __tablename__ = "checklist_items"

    feedback_id: uuid.UUID = Field(foreign_key="feedbacks.id", nullable=False, index=True)
    title: str = Field(nullable=False)
    is_completed: bool = Field(default=False, nullable=False)
    order: int = Field(default=0, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
