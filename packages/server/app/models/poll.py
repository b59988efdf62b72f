"""Poll, poll option and poll response models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Poll(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "polls"

    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    type: str = Field(nullable=False)  # SINGLE_CHOICE | MULTIPLE_CHOICE | RATING_SCALE | TEXT_INPUT
    visibility: str = Field(nullable=False, default="ANONYMOUS")  # ANONYMOUS | PUBLIC
    show_results: str = Field(nullable=False, default="LIVE")  # LIVE | AFTER_CLOSE
    allow_multiple_votes: bool = Field(default=False, nullable=False)
    is_required: bool = Field(default=False, nullable=False)
    max_text_length: Optional[int] = None
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    scheduled_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    closed_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    is_active: bool = Field(default=True, nullable=False)


class PollOption(UUIDMixin, SQLModel, table=True):
    __tablename__ = "poll_options"

    poll_id: uuid.UUID = Field(foreign_key="polls.id", nullable=False, index=True)
    text: str = Field(nullable=False)
    order: int = Field(default=0, nullable=False)


class PollResponse(UUIDMixin, SQLModel, table=True):
    __tablename__ = "poll_responses"

    poll_id: uuid.UUID = Field(foreign_key="polls.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    option_id: Optional[uuid.UUID] = Field(default=None, foreign_key="poll_options.id")
    rating_value: Optional[int] = None
    text_value: Optional[str] = Field(default=None, sa_type=sa.Text)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
