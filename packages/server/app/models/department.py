"""Department model."""

from typing import List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Department(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "departments"

    name: str = Field(nullable=False, index=True)
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list, sa_type=sa.JSON)
    allow_direct_feedback: bool = Field(default=False, nullable=False)
    manager_id: Optional[uuid.UUID] = Field(default=None)
    can_create_announcement: bool = Field(default=False, nullable=False)
    allowed_announcement_departments: List[str] = Field(default_factory=list, sa_type=sa.JSON)
    can_create_poll: bool = Field(default=False, nullable=False)
    allowed_poll_departments: List[str] = Field(default_factory=list, sa_type=sa.JSON)
