"""
Product update (changelog) endpoints.

Everyone reads published updates; admins write them, keep drafts and can
turn completed feedback into an update.
"""

from __future__ import annotations

import math
import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_member
from app.core.database import get_session
from app.models.base import utcnow
from app.models.feedback import Feedback
from app.models.update import Update
from feedback_hub_shared.schemas.common import FeedbackStatus, Pagination, UpdateCategory, UpdateSource
from feedback_hub_shared.schemas.updates import (
    UpdateCreate,
    UpdateEdit,
    UpdateFromFeedback,
    UpdatePage,
    UpdateRead,
)

log = structlog.get_logger()
router = APIRouter()


async def _get_update_or_404(
    session: AsyncSession, update_id: uuid.UUID, auth: AuthenticatedUser
) -> Update:
    item = await session.get(Update, update_id)
    if not item or (not item.is_published and not auth.is_admin):
        raise HTTPException(status_code=404, detail="Update not found")
    return item


@router.get("", response_model=UpdatePage)
async def list_updates(
    category: Optional[UpdateCategory] = None,
    search: Optional[str] = None,
    include_drafts: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    conditions = []
    if not (include_drafts and auth.is_admin):
        conditions.append(Update.is_published == True)  # noqa: E712
    if category:
        conditions.append(Update.category == category.value)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Update.title.ilike(pattern), Update.content.ilike(pattern)))

    total = (
        await session.execute(select(func.count()).select_from(Update).where(*conditions))
    ).scalar_one()
    result = await session.execute(
        select(Update)
        .where(*conditions)
        .order_by(Update.published_at.desc(), Update.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return UpdatePage(
        updates=[UpdateRead.model_validate(u) for u in result.scalars().all()],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=math.ceil(total / limit)
        ),
    )


@router.post("", response_model=UpdateRead, status_code=201)
async def create_update(
    body: UpdateCreate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    item = Update(
        title=body.title.strip(),
        content=body.content,
        category=body.category.value,
        source=UpdateSource.MANUAL.value,
        is_published=not body.is_draft,
        published_at=None if body.is_draft else utcnow(),
        created_by_id=auth.user_id,
    )
    session.add(item)
    await session.commit()
    await session.refresh(item)
    log.info("updates.created", update_id=str(item.id), draft=body.is_draft)
    return item


@router.post("/from-feedback", response_model=UpdateRead, status_code=201)
async def create_from_feedback(
    body: UpdateFromFeedback,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    """Publish an update describing a completed piece of feedback."""
    feedback = await session.get(Feedback, body.feedback_id)
    if not feedback or feedback.deleted_at is not None:
        raise HTTPException(status_code=404, detail="Feedback not found")
    if feedback.status != FeedbackStatus.COMPLETED.value:
        raise HTTPException(status_code=400, detail="Only completed feedback can become an update")

    item = Update(
        title=body.title or feedback.title,
        content=body.content or feedback.user_response or feedback.content,
        category=body.category.value,
        source=UpdateSource.FEEDBACK.value,
        feedback_id=feedback.id,
        is_published=True,
        published_at=utcnow(),
        created_by_id=auth.user_id,
    )
    session.add(item)
    await session.commit()
    await session.refresh(item)
    log.info("updates.created_from_feedback", update_id=str(item.id), feedback_id=str(feedback.id))
    return item


@router.get("/{update_id}", response_model=UpdateRead)
async def get_update(
    update_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    return await _get_update_or_404(session, update_id, auth)


@router.patch("/{update_id}", response_model=UpdateRead)
async def edit_update(
    update_id: uuid.UUID,
    body: UpdateEdit,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    item = await _get_update_or_404(session, update_id, auth)
    for key, value in body.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if key == "category":
            value = value.value
        setattr(item, key, value)
    session.add(item)
    await session.commit()
    await session.refresh(item)
    return item


@router.delete("/{update_id}", status_code=204)
async def delete_update(
    update_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    item = await _get_update_or_404(session, update_id, auth)
    await session.delete(item)


@router.post("/{update_id}/publish", response_model=UpdateRead)
async def publish_update(
    update_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    item = await _get_update_or_404(session, update_id, auth)
    if item.is_published:
        raise HTTPException(status_code=400, detail="Update is already published")
    item.is_published = True
    item.published_at = utcnow()
    session.add(item)
    await session.commit()
    await session.refresh(item)
    log.info("updates.published", update_id=str(item.id))
    return item
