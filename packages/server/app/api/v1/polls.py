"""
Poll endpoints: CRUD, copy, voting and results.

Poll types: single choice, multiple choice, rating scale, free text.
- Managers need a poll-enabled department and may only target allowed departments
- One vote per user unless allow_multiple_votes (re-voting replaces earlier votes)
- AFTER_CLOSE polls hide results from non-voters until they close
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_manager, require_member
from app.core.database import get_session
from app.models.base import utcnow
from app.models.poll import Poll
from app.services import polls as poll_service
from feedback_hub_shared.schemas.polls import PollCreate, PollRead, PollUpdate, VoteRequest

router = APIRouter()


@router.get("", response_model=List[PollRead])
async def list_polls(
    show_all: bool = False,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    """Open polls for the caller. Admins and managers may pass show_all."""
    stmt = select(Poll)
    if not (show_all and not auth.is_employee):
        stmt = stmt.where(
            Poll.is_active == True,  # noqa: E712
            or_(Poll.scheduled_at.is_(None), Poll.scheduled_at <= utcnow()),
        )
    if not auth.is_admin:
        stmt = stmt.where(
            or_(Poll.department_id.is_(None), Poll.department_id == auth.department_id)
        )
    result = await session.execute(stmt.order_by(Poll.created_at.desc()))
    return [await poll_service.enrich_poll(session, p, auth) for p in result.scalars().all()]


@router.post("", response_model=PollRead, status_code=201)
async def create_poll(
    body: PollCreate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.create_poll(session, body, auth)
    await session.commit()
    await session.refresh(poll)
    return await poll_service.enrich_poll(session, poll, auth)


@router.get("/{poll_id}", response_model=PollRead)
async def get_poll(
    poll_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    if not auth.is_admin and poll.department_id not in (None, auth.department_id):
        if poll.created_by_id != auth.user_id:
            raise HTTPException(status_code=403, detail="Forbidden")
    return await poll_service.enrich_poll(session, poll, auth)


@router.patch("/{poll_id}", response_model=PollRead)
async def update_poll(
    poll_id: uuid.UUID,
    body: PollUpdate,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    poll_service.ensure_owner(poll, auth)

    for key, value in body.model_dump(exclude_unset=True).items():
        if key == "show_results" and value is not None:
            value = value.value
        setattr(poll, key, value)

    session.add(poll)
    await session.commit()
    await session.refresh(poll)
    return await poll_service.enrich_poll(session, poll, auth)


@router.delete("/{poll_id}", status_code=204)
async def delete_poll(
    poll_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    poll_service.ensure_owner(poll, auth)
    await poll_service.delete_poll(session, poll)


@router.post("/{poll_id}/copy", response_model=PollRead, status_code=201)
async def copy_poll(
    poll_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    source = await poll_service.get_poll_or_404(session, poll_id)
    poll = await poll_service.copy_poll(session, source, auth)
    await session.commit()
    await session.refresh(poll)
    return await poll_service.enrich_poll(session, poll, auth)


# ---------------------------------------------------------------------------
# Voting & results
# ---------------------------------------------------------------------------


@router.post("/{poll_id}/vote", status_code=201)
async def vote(
    poll_id: uuid.UUID,
    body: VoteRequest,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    count = await poll_service.vote(session, poll, body, auth)
    return {"message": "Vote recorded", "count": count}


@router.delete("/{poll_id}/vote")
async def withdraw_vote(
    poll_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    if not poll.allow_multiple_votes:
        raise HTTPException(status_code=403, detail="Votes on this poll cannot be changed")
    await poll_service.withdraw_vote(session, poll, auth)
    return {"message": "Vote removed"}


@router.get("/{poll_id}/results")
async def poll_results(
    poll_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_member),
    session: AsyncSession = Depends(get_session),
):
    poll = await poll_service.get_poll_or_404(session, poll_id)
    await poll_service.ensure_can_see_results(session, poll, auth)
    return await poll_service.compute_results(session, poll, auth)
