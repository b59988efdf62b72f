# SQLModel definitions, imported here so create_all sees every table.
from .base import UUIDMixin, TimestampMixin, utcnow  # noqa: F401
from .department import Department  # noqa: F401
from .user import User  # noqa: F401
from .feedback import Feedback, FeedbackMessage, ChecklistItem  # noqa: F401
from .task import Task, TaskAssignment, TaskComment  # noqa: F401
from .notification import Notification  # noqa: F401
from .poll import Poll, PollOption, PollResponse  # noqa: F401
from .announcement import Announcement, AnnouncementView  # noqa: F401
from .assessment import (  # noqa: F401
    Assessment,
    AssessmentAssignment,
    AssessmentProgress,
    AssessmentQuestion,
    AssessmentResult,
)
from .file import SharedFolder, SharedFile  # noqa: F401
from .update import Update  # noqa: F401
from .settings import AppSettings  # noqa: F401
from .analytics_keyword import AnalyticsKeyword  # noqa: F401
