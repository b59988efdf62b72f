"""Analytics keyword model (keywords tracked across feedback text)."""

from typing import Optional
import uuid

from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class AnalyticsKeyword(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "analytics_keywords"

    keyword: str = Field(nullable=False, index=True)
    type: str = Field(nullable=False)  # SENSITIVE | POSITIVE | NEGATIVE | TOPIC | CUSTOM
    priority: str = Field(nullable=False, default="MEDIUM")  # HIGH | MEDIUM | LOW
    description: Optional[str] = None
    is_active: bool = Field(default=True, nullable=False)
    department_id: Optional[uuid.UUID] = Field(default=None, foreign_key="departments.id", index=True)  # null = global
