"""
Application settings service: singleton row, defaults, role filtering and
deep-merge updates.
"""

from __future__ import annotations

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.settings import AppSettings
from feedback_hub_shared.schemas.common import Role
from feedback_hub_shared.schemas.files import FileShareSettings
from feedback_hub_shared.schemas.settings import (
    AppSettingsRead,
    AppSettingsUpdate,
    NotificationSettings,
)

log = structlog.get_logger()

MANAGER_FIELDS = ("site_name", "logo_url", "status_texts", "feedback_types")
EMPLOYEE_FIELDS = ("site_name", "logo_url", "feedback_types")


def _deep_merge(base: dict, patch: dict) -> dict:
    """JSON Merge Patch style deep merge."""
    result = base.copy()
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


async def get_or_create_settings(session: AsyncSession) -> AppSettings:
    result = await session.execute(select(AppSettings).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        defaults = AppSettingsRead()
        row = AppSettings(**defaults.model_dump(mode="json"))
        session.add(row)
        await session.flush()
        log.info("settings.created_defaults")
    return row


def to_read(row: AppSettings) -> AppSettingsRead:
    """Validate stored JSON; missing keys fall back to defaults."""
    return AppSettingsRead(
        site_name=row.site_name,
        logo_url=row.logo_url,
        status_texts=row.status_texts or AppSettingsRead().status_texts,
        feedback_types=row.feedback_types or AppSettingsRead().feedback_types,
        notification_settings=NotificationSettings.model_validate(row.notification_settings or {}),
        file_share_settings=FileShareSettings.model_validate(row.file_share_settings or {}),
    )


def filter_for_role(settings: AppSettingsRead, role: str) -> dict:
    data = settings.model_dump(mode="json")
    if role == Role.ADMIN.value:
        return data
    fields = MANAGER_FIELDS if role == Role.MANAGER.value else EMPLOYEE_FIELDS
    return {k: data[k] for k in fields}


async def update_settings(
    session: AsyncSession, body: AppSettingsUpdate
) -> AppSettings:
    row = await get_or_create_settings(session)
    changes = body.model_dump(exclude_unset=True)

    for key in ("notification_settings", "file_share_settings"):
        if changes.get(key) is not None:
            merged = _deep_merge(getattr(row, key) or {}, changes.pop(key))
            model = NotificationSettings if key == "notification_settings" else FileShareSettings
            # raises ValidationError if invalid
            setattr(row, key, model.model_validate(merged).model_dump(mode="json"))

    for key, value in changes.items():
        if value is not None or key == "logo_url":
            setattr(row, key, value)

    session.add(row)
    log.info("settings.updated", fields=sorted(body.model_dump(exclude_unset=True)))
    return row


async def get_notification_settings(session: AsyncSession) -> NotificationSettings:
    row = await get_or_create_settings(session)
    return NotificationSettings.model_validate(row.notification_settings or {})


async def get_file_share_settings(session: AsyncSession) -> FileShareSettings:
    row = await get_or_create_settings(session)
    return FileShareSettings.model_validate(row.file_share_settings or {})
