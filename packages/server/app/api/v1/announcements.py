"""
Announcement endpoints: publishing, audience feed, views and bulk actions.

- Managers may only announce to their own department; organization-wide
  announcements are admin only
- An announcement is published immediately unless it is scheduled or inactive
"""

from __future__ import annotations

import uuid
from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_manager, require_member
from app.core.database import get_session
from app.models.announcement import Announcement, AnnouncementView
from app.models.base import utcnow
from app.models.user import User
from app.services import notifications as notify_service
from feedback_hub_shared.schemas.announcements import (
    AnnouncementCreate,
    AnnouncementRead,
    AnnouncementUpdate,
)
from feedback_hub_shared.schemas.common import BulkIds, CountResponse

log = structlog.get_logger()
router = APIRouter()

FEED_LIMIT = 50


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_announcement_or_404(
    session: AsyncSession, announcement_id: uuid.UUID
) -> Announcement:
    announcement = await session.get(Announcement, announcement_id)
    if not announcement:
        raise HTTPException(status_code=404, detail="Announcement not found")
    return announcement


def _ensure_author(announcement: Announcement, auth: AuthenticatedUser) -> None:
    if not (auth.is_admin or announcement.created_by_id == auth.user_id):
        raise HTTPException(status_code=403, detail="Only the author or an admin can do this")


def _is_due(announcement: Announcement) -> bool:
    return announcement.is_active and (
        announcement.scheduled_at is None or announcement.scheduled_at <= utcnow()
    )


# ---------------------------------------------------------------------------
# Feed & management
# ---------------------------------------------------------------------------


@router.get("", response_model=List[AnnouncementRead])
async def list_announcements(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Active announcements addressed to everyone or the caller's department."""
    now = utcnow()
    stmt = (
        select(Announcement)
        .where(
            Announcement.is_active == True,  # noqa: E712
            or_(
                Announcement.published_at.is_not(None),
                Announcement.scheduled_at <= now,
            ),
            or_(Announcement.scheduled_at.is_(None), Announcement.scheduled_at <= now),
            or_(
                Announcement.department_id.is_(None),
                Announcement.department_id == auth.department_id,
            ),
        )
        .order_by(Announcement.created_at.desc())
        .limit(FEED_LIMIT)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


@router.get("/manage", response_model=List[AnnouncementRead])
async def manage_announcements(
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(Announcement)
    if not auth.is_admin:
        stmt = stmt.where(Announcement.created_by_id == auth.user_id)
    result = await session.execute(stmt.order_by(Announcement.created_at.desc()))
    return list(result.scalars().all())


@router.post("", response_model=AnnouncementRead, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    if body.department_id is None and not auth.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can announce to everyone")
    if auth.is_manager and body.department_id != auth.department_id:
        raise HTTPException(status_code=403, detail="Managers can only announce to their own department")

    announcement = Announcement(
        **body.model_dump(exclude={"priority"}),
        priority=body.priority.value,
        created_by_id=auth.user_id,
    )
    if _is_due(announcement):
        announcement.published_at = utcnow()
    session.add(announcement)
    await session.flush()

    recipients = await notify_service.audience_ids(
        session, announcement.department_id, exclude=auth.user_id
    )
    notify_service.notify_many(
        session,
        recipients,
        "New announcement",
        announcement.title,
        redirect_url=f"/announcements/{announcement.id}",
    )
    await session.commit()
    await session.refresh(announcement)

    log.info(
        "announcements.created",
        announcement_id=str(announcement.id),
        recipients=len(recipients),
    )
    return announcement


# ---------------------------------------------------------------------------
# Bulk actions
# ---------------------------------------------------------------------------


@router.post("/bulk-deactivate", response_model=CountResponse)
async def bulk_deactivate(
    body: BulkIds,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    if not body.ids:
        raise HTTPException(status_code=400, detail="No announcements selected")
    result = await session.execute(
        update(Announcement).where(Announcement.id.in_(body.ids)).values(is_active=False)
    )
    return CountResponse(count=result.rowcount)


@router.post("/bulk-delete", response_model=CountResponse)
async def bulk_delete(
    body: BulkIds,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    if not body.ids:
        raise HTTPException(status_code=400, detail="No announcements selected")
    await session.execute(
        delete(AnnouncementView).where(AnnouncementView.announcement_id.in_(body.ids))
    )
    result = await session.execute(delete(Announcement).where(Announcement.id.in_(body.ids)))
    return CountResponse(count=result.rowcount)


# ---------------------------------------------------------------------------
# Single announcement
# ---------------------------------------------------------------------------


@router.get("/{announcement_id}", response_model=AnnouncementRead)
async def get_announcement(
    announcement_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    announcement = await _get_announcement_or_404(session, announcement_id)
    if not auth.is_admin and announcement.department_id not in (None, auth.department_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return announcement


@router.patch("/{announcement_id}", response_model=AnnouncementRead)
async def update_announcement(
    announcement_id: uuid.UUID,
    body: AnnouncementUpdate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    announcement = await _get_announcement_or_404(session, announcement_id)
    _ensure_author(announcement, auth)

    for key, value in body.model_dump(exclude_unset=True).items():
        if key == "priority" and value is not None:
            value = value.value
        setattr(announcement, key, value)
    if announcement.published_at is None and _is_due(announcement):
        announcement.published_at = utcnow()

    session.add(announcement)
    await session.commit()
    await session.refresh(announcement)
    return announcement


@router.delete("/{announcement_id}", status_code=204)
async def delete_announcement(
    announcement_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    announcement = await _get_announcement_or_404(session, announcement_id)
    _ensure_author(announcement, auth)
    await session.execute(
        delete(AnnouncementView).where(AnnouncementView.announcement_id == announcement.id)
    )
    await session.delete(announcement)


@router.post("/{announcement_id}/view")
async def mark_viewed(
    announcement_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    await _get_announcement_or_404(session, announcement_id)
    view = await session.get(AnnouncementView, (announcement_id, auth.user_id))
    if view:
        view.viewed_at = utcnow()
    else:
        view = AnnouncementView(announcement_id=announcement_id, user_id=auth.user_id)
    session.add(view)
    return {"message": "Viewed"}


@router.get("/{announcement_id}/viewers")
async def list_viewers(
    announcement_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    announcement = await _get_announcement_or_404(session, announcement_id)
    _ensure_author(announcement, auth)
    result = await session.execute(
        select(AnnouncementView, User)
        .join(User, User.id == AnnouncementView.user_id)
        .where(AnnouncementView.announcement_id == announcement.id)
        .order_by(AnnouncementView.viewed_at.desc())
    )
    viewers = [
        {"user_id": user.id, "name": user.name, "viewed_at": view.viewed_at}
        for view, user in result.all()
    ]
    return {"viewers": viewers, "count": len(viewers)}
