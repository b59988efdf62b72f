"""Analytics keyword schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import KeywordPriority, KeywordType


class KeywordCreate(BaseModel):
    keyword: str = Field(min_length=1, max_length=100)
    type: KeywordType
    priority: KeywordPriority = KeywordPriority.MEDIUM
    description: Optional[str] = None
    is_active: bool = True
    department_id: Optional[uuid.UUID] = None


class KeywordUpdate(BaseModel):
    keyword: Optional[str] = Field(default=None, min_length=1, max_length=100)
    type: Optional[KeywordType] = None
    priority: Optional[KeywordPriority] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    department_id: Optional[uuid.UUID] = None


class KeywordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    keyword: str
    type: KeywordType
    priority: KeywordPriority
    description: Optional[str] = None
    is_active: bool
    department_id: Optional[uuid.UUID] = None
    created_at: datetime
