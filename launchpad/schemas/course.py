from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from launchpad.schemas.dashboard import DashboardEnrollment


# ============================================================
# Outline
# ============================================================

class LessonOutline(BaseModel):
    id: UUID
    title: str
    slug: str
    position: int
    is_free_preview: bool
    locked: bool


class ModuleOutline(BaseModel):
    id: UUID
    title: str
    position: int
    lessons: List[LessonOutline] = []


class CourseOutlineResponse(BaseModel):
    """Schema for a course outline as seen by the caller"""

    id: UUID
    title: str
    slug: str
    enrollment: DashboardEnrollment
    modules: List[ModuleOutline] = []


# ============================================================
# Lesson progress
# ============================================================

class LessonProgressResponse(BaseModel):
    """Schema for a lesson progress row after view/complete"""

    lesson_id: UUID
    last_viewed_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
