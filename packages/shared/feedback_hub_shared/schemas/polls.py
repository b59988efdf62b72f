"""Poll schemas: creation, voting and result aggregation."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .common import NaiveUTCDatetime, PollShowResults, PollType, PollVisibility


class PollCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: Optional[str] = None
    type: PollType
    visibility: PollVisibility = PollVisibility.ANONYMOUS
    show_results: PollShowResults = PollShowResults.LIVE
    allow_multiple_votes: bool = False
    is_required: bool = False
    max_text_length: Optional[int] = Field(default=None, ge=1)
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None
    department_id: Optional[uuid.UUID] = None
    scheduled_at: Optional[NaiveUTCDatetime] = None
    closed_at: Optional[NaiveUTCDatetime] = None
    is_active: bool = True
    options: List[str] = Field(default_factory=list)


class PollUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    show_results: Optional[PollShowResults] = None
    allow_multiple_votes: Optional[bool] = None
    is_required: Optional[bool] = None
    max_text_length: Optional[int] = Field(default=None, ge=1)
    scheduled_at: Optional[NaiveUTCDatetime] = None
    closed_at: Optional[NaiveUTCDatetime] = None
    is_active: Optional[bool] = None


class PollOptionRead(BaseModel):
    id: uuid.UUID
    text: str
    order: int


class PollRead(BaseModel):
    id: uuid.UUID
    title: str
    description: Optional[str] = None
    type: PollType
    visibility: PollVisibility
    show_results: PollShowResults
    allow_multiple_votes: bool
    is_required: bool
    max_text_length: Optional[int] = None
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None
    department_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    scheduled_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    is_active: bool
    options: List[PollOptionRead] = Field(default_factory=list)
    has_voted: bool = False
    response_count: int = 0
    created_at: datetime


class VoteRequest(BaseModel):
    option_ids: List[uuid.UUID] = Field(default_factory=list)
    rating_value: Optional[int] = None
    text_value: Optional[str] = None
