"""Notification model."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Notification(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    feedback_id: Optional[uuid.UUID] = Field(default=None, foreign_key="feedbacks.id", index=True)
    title: str = Field(nullable=False)
    content: str = Field(nullable=False)
    type: str = Field(nullable=False, default="INFO")  # INFO | SUCCESS | WARNING | ERROR
    redirect_url: Optional[str] = None
    is_read: bool = Field(default=False, nullable=False, index=True)
