"""
Notification endpoints: inbox listing, manual notifications, read state.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_manager, require_member
from app.core.database import MISSING_SCHEMA_ERRORS, get_session
from app.models.notification import Notification
from app.models.user import User
from app.services import notifications as notify_service
from feedback_hub_shared.schemas.notifications import (
    NotificationCreate,
    NotificationList,
    NotificationRead,
)

log = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """The caller's latest notifications and unread count."""
    stmt = select(Notification).where(Notification.user_id == auth.user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read == False)  # noqa: E712
    try:
        result = await session.execute(stmt.order_by(Notification.created_at.desc()).limit(limit))
        notifications = list(result.scalars().all())
        unread = await session.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == auth.user_id, Notification.is_read == False)  # noqa: E712
        )
        unread_count = unread.scalar_one()
    except MISSING_SCHEMA_ERRORS as exc:
        await session.rollback()
        log.warning("notifications.table_missing", error=str(exc))
        return NotificationList(notifications=[], unread_count=0)

    return NotificationList(
        notifications=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.post("", response_model=NotificationRead, status_code=201)
async def create_notification(
    body: NotificationCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    if not await session.get(User, body.user_id):
        raise HTTPException(status_code=404, detail="User not found")
    notification = notify_service.notify(
        session,
        body.user_id,
        body.title,
        body.content,
        type=body.type,
        feedback_id=body.feedback_id,
        redirect_url=body.redirect_url,
    )
    await session.commit()
    await session.refresh(notification)
    return notification


@router.patch("/read-all")
async def mark_all_read(
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        update(Notification)
        .where(Notification.user_id == auth.user_id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True)
    )
    return {"message": "All notifications marked as read", "count": result.rowcount}


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_read(
    notification_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    notification = await session.get(Notification, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    if notification.user_id != auth.user_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    notification.is_read = True
    session.add(notification)
    await session.commit()
    await session.refresh(notification)
    return notification
