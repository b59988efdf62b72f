"""
API v1 Router

Every resource router is mounted under /api/v1 by the application.
"""

from fastapi import APIRouter
from . import (
    analytics,
    announcements,
    assessments,
    dashboard,
    departments,
    feedback,
    files,
    notifications,
    polls,
    settings,
    tasks,
    updates,
    users,
)

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(departments.router, prefix="/departments", tags=["Departments"])
router.include_router(feedback.router, prefix="/feedback", tags=["Feedback"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(polls.router, prefix="/polls", tags=["Polls"])
router.include_router(announcements.router, prefix="/announcements", tags=["Announcements"])
router.include_router(assessments.router, prefix="/assessments", tags=["Assessments"])
router.include_router(files.router, prefix="/files", tags=["Files"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(updates.router, prefix="/updates", tags=["Updates"])
router.include_router(settings.router, prefix="/settings", tags=["Settings"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
router.include_router(analytics.keywords_router, prefix="/analytics-keywords", tags=["Analytics"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available resources."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/users",
            "/departments",
            "/feedback",
            "/tasks",
            "/polls",
            "/announcements",
            "/assessments",
            "/files",
            "/notifications",
            "/updates",
            "/settings",
            "/analytics",
            "/analytics-keywords",
            "/dashboard",
        ],
    }
