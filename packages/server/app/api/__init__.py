"""
API Router

Everything except authentication lives under /api.
"""

from fastapi import APIRouter

from . import activity_logs, analytics, meetings, notifications, organizations, realtime, tasks

router = APIRouter()

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(meetings.router, prefix="/meetings", tags=["Meetings"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(activity_logs.router, prefix="/activity-logs", tags=["Activity Logs"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns the available endpoint groups."""
    return {
        "api": "prody",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/tasks",
            "/meetings",
            "/notifications",
            "/activity-logs",
            "/analytics",
        ],
    }
