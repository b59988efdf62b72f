import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class FeedbackStatus(str, Enum):
    PENDING = "PENDING"
    REVIEWED = "REVIEWED"
    ARCHIVED = "ARCHIVED"
    DEFERRED = "DEFERRED"
    COMPLETED = "COMPLETED"


class FeedbackType(str, Enum):
    SUGGESTION = "SUGGESTION"
    CRITICAL = "CRITICAL"
    SURVEY = "SURVEY"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FORWARDED = "FORWARDED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NotificationType(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class PollType(str, Enum):
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    RATING_SCALE = "RATING_SCALE"
    TEXT_INPUT = "TEXT_INPUT"


class PollVisibility(str, Enum):
    ANONYMOUS = "ANONYMOUS"
    PUBLIC = "PUBLIC"


class PollShowResults(str, Enum):
    LIVE = "LIVE"
    AFTER_CLOSE = "AFTER_CLOSE"


class AnnouncementPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AssessmentType(str, Enum):
    MBTI = "MBTI"
    DISC = "DISC"
    HOLLAND = "HOLLAND"
    MSQ = "MSQ"
    CUSTOM = "CUSTOM"


class UpdateCategory(str, Enum):
    FEATURE = "FEATURE"
    IMPROVEMENT = "IMPROVEMENT"
    BUG_FIX = "BUG_FIX"
    ANNOUNCEMENT = "ANNOUNCEMENT"


class UpdateSource(str, Enum):
    MANUAL = "MANUAL"
    FEEDBACK = "FEEDBACK"


class KeywordType(str, Enum):
    SENSITIVE = "SENSITIVE"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    TOPIC = "TOPIC"
    CUSTOM = "CUSTOM"


class KeywordPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


# Sort weight for priority ordering (higher first)
PRIORITY_WEIGHT: dict[str, int] = {"HIGH": 3, "MEDIUM": 2, "LOW": 1}


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class BulkIds(BaseModel):
    """Request body for bulk operations."""
    ids: list[uuid.UUID]


class CountResponse(BaseModel):
    count: int
    message: Optional[str] = None


def _to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; aware inputs are converted."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


NaiveUTCDatetime = Annotated[datetime, AfterValidator(_to_naive_utc)]
