"""
Application settings schemas.

The settings row is a singleton; JSON columns are validated through these
models so missing keys fall back to defaults.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field

from .files import FileShareSettings


DEFAULT_STATUS_TEXTS: Dict[str, str] = {
    "PENDING": "Pending",
    "REVIEWED": "Reviewed",
    "ARCHIVED": "Archived",
    "DEFERRED": "Deferred",
    "COMPLETED": "Completed",
}

DEFAULT_FEEDBACK_TYPES: Dict[str, str] = {
    "SUGGESTION": "Suggestion",
    "CRITICAL": "Critical",
    "SURVEY": "Survey",
}


class NotificationSettings(BaseModel):
    direct_feedback_to_manager: bool = Field(
        default=True,
        description="Notify admins when feedback is routed straight to a manager",
    )
    feedback_completed_by_manager: bool = Field(
        default=True,
        description="Notify admins when a manager completes feedback",
    )


class AppSettingsRead(BaseModel):
    """Full settings document (admin view)."""

    site_name: str = "Feedback Hub"
    logo_url: Optional[str] = None
    status_texts: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_STATUS_TEXTS))
    feedback_types: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_FEEDBACK_TYPES))
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    file_share_settings: FileShareSettings = Field(default_factory=FileShareSettings)


class AppSettingsUpdate(BaseModel):
    site_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    logo_url: Optional[str] = None
    status_texts: Optional[Dict[str, str]] = None
    feedback_types: Optional[Dict[str, str]] = None
    notification_settings: Optional[dict] = Field(
        default=None, description="Partial update, deep-merged"
    )
    file_share_settings: Optional[dict] = Field(
        default=None, description="Partial update, deep-merged"
    )
