from fastapi import APIRouter
from launchpad.api.v1.endpoints import auth, dashboard, courses

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# Include auth routes at /auth
api_router.include_router(
    auth.router,
    prefix="/auth"
)

# Learner dashboard at /dashboard
api_router.include_router(
    dashboard.router,
    prefix="/dashboard"
)

# Course outline and lesson tracking at /courses
api_router.include_router(
    courses.router,
    prefix="/courses"
)
