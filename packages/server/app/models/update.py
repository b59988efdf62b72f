"""Product update (changelog entry) model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Update(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "updates"

    title: str = Field(nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    category: str = Field(nullable=False, index=True)  # FEATURE | IMPROVEMENT | BUG_FIX | ANNOUNCEMENT
    source: str = Field(nullable=False, default="MANUAL")  # MANUAL | FEEDBACK
    feedback_id: Optional[uuid.UUID] = Field(default=None, foreign_key="feedbacks.id")
    is_published: bool = Field(default=False, nullable=False, index=True)
    published_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
