"""Announcement and announcement view models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Announcement(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "announcements"

    title: str = Field(nullable=False)
    content: str = Field(nullable=False, sa_type=sa.Text)
    priority: str = Field(nullable=False, default="MEDIUM")
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)  # null = everyone
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    is_active: bool = Field(default=True, nullable=False)
    scheduled_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    published_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())


class AnnouncementView(SQLModel, table=True):
    __tablename__ = "announcement_views"

    announcement_id: uuid.UUID = Field(foreign_key="announcements.id", primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True)
    viewed_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
