from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.db.database import get_db
from launchpad.core.config import settings
from launchpad.schemas.auth import ErrorResponse
from launchpad.schemas.dashboard import DashboardResponse
from launchpad.services.dashboard_service import DashboardService
from launchpad.api.deps import enforce_dashboard_rate_limit
from launchpad.models.user import User

router = APIRouter(tags=["Dashboard"])


@router.get(
    "",
    response_model=DashboardResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Course not found"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    }
)
async def get_dashboard(
    response: Response,
    course_id: Optional[str] = Query(None, description="Course id or slug; defaults to the first course"),
    current_user: User = Depends(enforce_dashboard_rate_limit),
    db: AsyncSession = Depends(get_db)
):
    """
    Learner dashboard for one course.

    Progress per module, where to resume, enrollment status and, for
    learners without full access, links to unlock the course.
    """
    dashboard_service = DashboardService(db)
    dashboard = await dashboard_service.get_dashboard(current_user, course_id)

    response.headers["Cache-Control"] = f"private, max-age={settings.DASHBOARD_CACHE_SECONDS}"
    return dashboard
