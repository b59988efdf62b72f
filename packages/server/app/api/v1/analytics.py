"""
Analytics endpoints: feedback overview and tracked keywords.

Managers only ever see their own department.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import AuthenticatedUser, require_admin, require_manager
from app.core.database import get_session
from app.models.analytics_keyword import AnalyticsKeyword
from app.services import analytics as analytics_service
from feedback_hub_shared.schemas.analytics import KeywordCreate, KeywordRead, KeywordUpdate
from feedback_hub_shared.schemas.common import PRIORITY_WEIGHT, KeywordType

log = structlog.get_logger()
router = APIRouter()
keywords_router = APIRouter()


def _scope(auth: AuthenticatedUser, department_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    return department_id if auth.is_admin else auth.department_id


@router.get("")
async def get_analytics(
    department_id: Optional[uuid.UUID] = None,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    return await analytics_service.overview(session, _scope(auth, department_id))


# ---------------------------------------------------------------------------
# Tracked keywords
# ---------------------------------------------------------------------------


async def _get_keyword_or_404(session: AsyncSession, keyword_id: uuid.UUID) -> AnalyticsKeyword:
    keyword = await session.get(AnalyticsKeyword, keyword_id)
    if not keyword:
        raise HTTPException(status_code=404, detail="Keyword not found")
    return keyword


@keywords_router.get("", response_model=List[KeywordRead])
async def list_keywords(
    department_id: Optional[str] = None,
    type: Optional[KeywordType] = None,
    is_active: Optional[bool] = None,
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    """`department_id=null` selects global keywords."""
    stmt = select(AnalyticsKeyword)
    if department_id == "null":
        stmt = stmt.where(AnalyticsKeyword.department_id.is_(None))
    elif department_id:
        try:
            stmt = stmt.where(AnalyticsKeyword.department_id == uuid.UUID(department_id))
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid department_id")
    if type:
        stmt = stmt.where(AnalyticsKeyword.type == type.value)
    if is_active is not None:
        stmt = stmt.where(AnalyticsKeyword.is_active == is_active)

    weight = case(PRIORITY_WEIGHT, value=AnalyticsKeyword.priority, else_=0)
    result = await session.execute(stmt.order_by(weight.desc(), AnalyticsKeyword.created_at.desc()))
    return list(result.scalars().all())


@keywords_router.post("", response_model=KeywordRead, status_code=201)
async def create_keyword(
    body: KeywordCreate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    keyword = AnalyticsKeyword(
        **body.model_dump(exclude={"keyword", "type", "priority"}),
        keyword=body.keyword.strip(),
        type=body.type.value,
        priority=body.priority.value,
    )
    session.add(keyword)
    await session.commit()
    await session.refresh(keyword)
    log.info("analytics.keyword_created", keyword_id=str(keyword.id), keyword=keyword.keyword)
    return keyword


@keywords_router.get("/report")
async def keyword_report(
    type: str = "summary",
    department_id: Optional[uuid.UUID] = None,
    days: int = Query(30, ge=1, le=365),
    auth: AuthenticatedUser = Depends(require_manager),
    session: AsyncSession = Depends(get_session),
):
    if type not in analytics_service.REPORT_TYPES:
        raise HTTPException(status_code=400, detail="Invalid report type")
    scope = _scope(auth, department_id)
    if type == "summary":
        return await analytics_service.keyword_summary(session, scope, days)
    if type == "trends":
        return await analytics_service.keyword_trends(session, scope, days)
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can compare departments")
    return await analytics_service.keyword_comparison(session, days)


@keywords_router.patch("/{keyword_id}", response_model=KeywordRead)
async def update_keyword(
    keyword_id: uuid.UUID,
    body: KeywordUpdate,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    keyword = await _get_keyword_or_404(session, keyword_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("type", "priority") and value is not None:
            value = value.value
        if value is None and key != "department_id" and key != "description":
            continue
        setattr(keyword, key, value)
    session.add(keyword)
    await session.commit()
    await session.refresh(keyword)
    return keyword


@keywords_router.delete("/{keyword_id}", status_code=204)
async def delete_keyword(
    keyword_id: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
):
    keyword = await _get_keyword_or_404(session, keyword_id)
    await session.delete(keyword)
