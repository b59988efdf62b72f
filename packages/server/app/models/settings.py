"""Singleton application settings row."""

from typing import Any, Dict, Optional

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class AppSettings(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "settings"

    site_name: str = Field(nullable=False, default="Feedback Hub")
    logo_url: Optional[str] = None
    status_texts: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    feedback_types: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    notification_settings: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    file_share_settings: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
