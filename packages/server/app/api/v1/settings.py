"""Application settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AuthenticatedUser, require_admin, require_member
from app.core.database import get_session
from app.services import settings as settings_service
from feedback_hub_shared.schemas.settings import AppSettingsRead, AppSettingsUpdate

router = APIRouter()


@router.get("")
async def get_settings_view(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Settings visible to the caller's role."""
    row = await settings_service.get_or_create_settings(session)
    return settings_service.filter_for_role(settings_service.to_read(row), auth.role)


@router.patch("", response_model=AppSettingsRead)
async def patch_settings(
    body: AppSettingsUpdate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    row = await settings_service.update_settings(session, body)
    await session.commit()
    await session.refresh(row)
    return settings_service.to_read(row)
