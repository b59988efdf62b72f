"""
Assessment schemas: questionnaires (MBTI / DISC / custom), department
assignments, in-progress answers and scored results.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .common import AssessmentType, NaiveUTCDatetime


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------

class QuestionOption(BaseModel):
    """A selectable answer; `score` maps a dimension (E, I, D, ...) to points, or is a bare number for custom tests."""
    text: str
    value: Optional[str] = None
    score: Union[Dict[str, float], float] = Field(default_factory=dict)


class QuestionCreate(BaseModel):
    question: str = Field(min_length=1)
    options: List[QuestionOption] = Field(min_length=2)
    order: Optional[int] = None
    is_required: bool = True


class QuestionUpdate(BaseModel):
    question: Optional[str] = Field(default=None, min_length=1)
    options: Optional[List[QuestionOption]] = None
    is_required: Optional[bool] = None


class QuestionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    question: str
    options: List[QuestionOption]
    order: int
    is_required: bool


class QuestionReorder(BaseModel):
    question_ids: List[uuid.UUID]


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------

class AssessmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    type: AssessmentType
    instructions: Optional[str] = None
    is_active: bool = True
    allow_retake: bool = False
    time_limit: Optional[int] = Field(default=None, ge=1)
    show_results: bool = True
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    questions: List[QuestionCreate] = Field(default_factory=list)


class AssessmentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    instructions: Optional[str] = None
    is_active: Optional[bool] = None
    allow_retake: Optional[bool] = None
    time_limit: Optional[int] = Field(default=None, ge=1)
    show_results: Optional[bool] = None
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)


class AssessmentRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    type: AssessmentType
    instructions: Optional[str] = None
    is_active: bool
    allow_retake: bool
    time_limit: Optional[int] = None
    show_results: bool
    passing_score: Optional[float] = None
    created_by_id: uuid.UUID
    question_count: int = 0
    assignment_count: int = 0
    result_count: int = 0
    questions: Optional[List[QuestionRead]] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Assignment / progress / submission
# ---------------------------------------------------------------------------

class AssignmentRequest(BaseModel):
    department_id: uuid.UUID
    is_required: bool = False
    start_date: Optional[NaiveUTCDatetime] = None
    end_date: Optional[NaiveUTCDatetime] = None
    allow_manager_view: bool = False


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    assessment_id: uuid.UUID
    department_id: uuid.UUID
    is_required: bool
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    allow_manager_view: bool


class ProgressSave(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    current_question: int = Field(default=0, ge=0)


class SubmitRequest(BaseModel):
    answers: Dict[str, Any]
    time_taken: Optional[int] = Field(default=None, ge=0)


class ResultRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    assessment_id: uuid.UUID
    user_id: uuid.UUID
    score: Optional[float] = None
    result: Dict[str, Any] = Field(default_factory=dict)
    is_passed: Optional[bool] = None
    time_taken: Optional[int] = None
    completed_at: datetime
