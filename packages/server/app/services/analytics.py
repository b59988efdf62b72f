"""
Feedback analytics: overview counters and the tracked-keyword report.

Keyword matching is a plain case-insensitive substring test against
``title + content``; the report variants only differ in how feedback is
grouped before matching.
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import timedelta
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.models.analytics_keyword import AnalyticsKeyword
from app.models.base import utcnow
from app.models.department import Department
from app.models.feedback import Feedback

REPORT_TYPES = ("summary", "trends", "comparison")
TOP_KEYWORDS = 10
TOP_KEYWORDS_PER_DEPARTMENT = 5


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------


async def overview(session: AsyncSession, department_id: Optional[uuid.UUID] = None) -> dict:
    conditions = [Feedback.deleted_at.is_(None)]
    if department_id:
        conditions.append(Feedback.department_id == department_id)

    total = (
        await session.execute(select(func.count()).select_from(Feedback).where(*conditions))
    ).scalar_one()
    average = (
        await session.execute(
            select(func.avg(Feedback.rating)).where(*conditions, Feedback.rating.is_not(None))
        )
    ).scalar_one()

    ratings = dict(
        (
            await session.execute(
                select(Feedback.rating, func.count())
                .where(*conditions, Feedback.rating.is_not(None))
                .group_by(Feedback.rating)
            )
        ).all()
    )
    by_status = dict(
        (
            await session.execute(
                select(Feedback.status, func.count()).where(*conditions).group_by(Feedback.status)
            )
        ).all()
    )
    by_type = dict(
        (
            await session.execute(
                select(Feedback.type, func.count()).where(*conditions).group_by(Feedback.type)
            )
        ).all()
    )
    by_department = (
        await session.execute(
            select(Department.id, Department.name, func.count(Feedback.id))
            .join(Feedback, Feedback.department_id == Department.id)
            .where(*conditions)
            .group_by(Department.id, Department.name)
            .order_by(func.count(Feedback.id).desc())
        )
    ).all()

    return {
        "total_feedback": total,
        "average_rating": round(float(average), 2) if average is not None else 0.0,
        "active_departments": len(by_department),
        "rating_distribution": {str(r): ratings.get(r, 0) for r in range(1, 6)},
        "by_department": [
            {"department_id": dept_id, "name": name, "count": count}
            for dept_id, name, count in by_department
        ],
        "by_status": by_status,
        "by_type": by_type,
    }


# ---------------------------------------------------------------------------
# Keyword report
# ---------------------------------------------------------------------------


def match_keywords(
    keywords: Sequence[AnalyticsKeyword], feedbacks: Iterable[Feedback]
) -> list[dict]:
    """Per-keyword match counts, most frequent first. Unmatched keywords are kept with count 0."""
    stats = {
        k.id: {
            "keyword_id": k.id,
            "keyword": k.keyword,
            "type": k.type,
            "priority": k.priority,
            "count": 0,
            "feedback_ids": [],
        }
        for k in keywords
    }
    for fb in feedbacks:
        text = f"{fb.title} {fb.content}".lower()
        for k in keywords:
            if k.keyword.lower() in text:
                stats[k.id]["count"] += 1
                stats[k.id]["feedback_ids"].append(fb.id)
    return sorted(stats.values(), key=lambda s: s["count"], reverse=True)


def summarize(keywords: Sequence[AnalyticsKeyword], feedbacks: Sequence[Feedback]) -> dict:
    matches = match_keywords(keywords, feedbacks)
    type_distribution: Counter = Counter()
    for m in matches:
        type_distribution[m["type"]] += m["count"]
    return {
        "total_feedback": len(feedbacks),
        "keywords": matches,
        "type_distribution": dict(type_distribution),
        "top_keywords": [m for m in matches if m["count"]][:TOP_KEYWORDS],
    }


async def _active_keywords(
    session: AsyncSession, department_id: Optional[uuid.UUID]
) -> list[AnalyticsKeyword]:
    """Active global keywords plus the department's own."""
    scope = AnalyticsKeyword.department_id.is_(None)
    if department_id:
        scope = or_(scope, AnalyticsKeyword.department_id == department_id)
    result = await session.execute(
        select(AnalyticsKeyword).where(AnalyticsKeyword.is_active == True, scope)  # noqa: E712
    )
    return list(result.scalars().all())


async def _recent_feedback(
    session: AsyncSession, department_id: Optional[uuid.UUID], days: int
) -> list[Feedback]:
    stmt = select(Feedback).where(
        Feedback.deleted_at.is_(None), Feedback.created_at >= utcnow() - timedelta(days=days)
    )
    if department_id:
        stmt = stmt.where(Feedback.department_id == department_id)
    result = await session.execute(stmt.order_by(Feedback.created_at))
    return list(result.scalars().all())


async def keyword_summary(
    session: AsyncSession, department_id: Optional[uuid.UUID], days: int
) -> dict:
    keywords = await _active_keywords(session, department_id)
    feedbacks = await _recent_feedback(session, department_id, days)
    return {"type": "summary", "days": days, **summarize(keywords, feedbacks)}


async def keyword_trends(
    session: AsyncSession, department_id: Optional[uuid.UUID], days: int
) -> dict:
    keywords = await _active_keywords(session, department_id)
    feedbacks = await _recent_feedback(session, department_id, days)

    by_day: dict = {}
    start = utcnow().date() - timedelta(days=days - 1)
    for offset in range(days):
        by_day[start + timedelta(days=offset)] = []
    for fb in feedbacks:
        by_day.setdefault(fb.created_at.date(), []).append(fb)

    trends = []
    for day, items in sorted(by_day.items()):
        top = [
            {"keyword": m["keyword"], "count": m["count"]}
            for m in match_keywords(keywords, items)
            if m["count"]
        ][:TOP_KEYWORDS]
        trends.append({"date": day.isoformat(), "total_feedback": len(items), "keywords": top})
    return {"type": "trends", "days": days, "trends": trends}


async def keyword_comparison(session: AsyncSession, days: int) -> dict:
    departments = (
        await session.execute(select(Department).order_by(Department.name))
    ).scalars().all()
    comparison = []
    for dept in departments:
        keywords = await _active_keywords(session, dept.id)
        feedbacks = await _recent_feedback(session, dept.id, days)
        summary = summarize(keywords, feedbacks)
        comparison.append(
            {
                "department_id": dept.id,
                "name": dept.name,
                "total_feedback": summary["total_feedback"],
                "top_keywords": summary["top_keywords"][:TOP_KEYWORDS_PER_DEPARTMENT],
            }
        )
    return {"type": "comparison", "days": days, "departments": comparison}
