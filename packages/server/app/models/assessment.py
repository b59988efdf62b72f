"""Assessment models: questionnaires, department assignments, progress and results."""

from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Assessment(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "assessments"

    title: str = Field(nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    type: str = Field(nullable=False)  # MBTI | DISC | CUSTOM
    instructions: Optional[str] = Field(default=None, sa_type=sa.Text)
    is_active: bool = Field(default=True, nullable=False)
    allow_retake: bool = Field(default=False, nullable=False)
    time_limit: Optional[int] = None  # minutes
    show_results: bool = Field(default=True, nullable=False)
    passing_score: Optional[float] = None
    created_by_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)


class AssessmentQuestion(UUIDMixin, SQLModel, table=True):
    __tablename__ = "assessment_questions"

    assessment_id: uuid.UUID = Field(foreign_key="assessments.id", nullable=False, index=True)
    question: str = Field(nullable=False, sa_type=sa.Text)
    # [{"text": ..., "value": ..., "score": {"E": 1}}]
    options: List[Dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    order: int = Field(default=0, nullable=False)
    is_required: bool = Field(default=True, nullable=False)


class AssessmentAssignment(UUIDMixin, SQLModel, table=True):
    __tablename__ = "assessment_assignments"
    __table_args__ = (sa.UniqueConstraint("assessment_id", "department_id"),)

    assessment_id: uuid.UUID = Field(foreign_key="assessments.id", nullable=False, index=True)
    department_id: uuid.UUID = Field(foreign_key="departments.id", nullable=False, index=True)
    is_required: bool = Field(default=False, nullable=False)
    start_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    end_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime())
    allow_manager_view: bool = Field(default=False, nullable=False)
    assigned_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())


class AssessmentProgress(UUIDMixin, SQLModel, table=True):
    __tablename__ = "assessment_progress"
    __table_args__ = (sa.UniqueConstraint("assessment_id", "user_id"),)

    assessment_id: uuid.UUID = Field(foreign_key="assessments.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    answers: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    current_question: int = Field(default=0, nullable=False)
    started_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
    last_saved_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())


class AssessmentResult(UUIDMixin, SQLModel, table=True):
    __tablename__ = "assessment_results"

    assessment_id: uuid.UUID = Field(foreign_key="assessments.id", nullable=False, index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    answers: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    score: Optional[float] = None
    result: Dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    is_passed: Optional[bool] = None
    time_taken: Optional[int] = None  # seconds
    completed_at: datetime = Field(default_factory=utcnow, nullable=False, sa_type=sa.DateTime())
