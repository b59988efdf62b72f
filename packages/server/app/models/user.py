"""User model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class User(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    name: str = Field(nullable=False)
    mobile: str = Field(nullable=False, unique=True, index=True)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    password_hash: str = Field(nullable=False)
    role: str = Field(nullable=False, default="EMPLOYEE", index=True)  # ADMIN | MANAGER | EMPLOYEE
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)
    is_active: bool = Field(default=True, nullable=False)
    avatar_url: Optional[str] = None
    last_seen_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
