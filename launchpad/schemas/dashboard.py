from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from uuid import UUID


class DashboardUser(BaseModel):
    id: UUID
    name: Optional[str] = None
    email: Optional[str] = None
    email_verified: bool


class DashboardCourse(BaseModel):
    id: UUID
    title: str
    slug: str


class DashboardEnrollment(BaseModel):
    status: str  # enrolled, trial, expired, not_enrolled
    source: Optional[str] = None
    expires_at: Optional[datetime] = None


class NextLesson(BaseModel):
    lesson_id: UUID
    title: str
    slug: str
    locked: bool


class ModuleProgressResponse(BaseModel):
    module_id: UUID
    title: str
    percent: int
    completed: int
    total: int
    next_lesson: Optional[NextLesson] = None


class DashboardProgress(BaseModel):
    overall_percent: int
    last_activity_at: Optional[datetime] = None
    modules: List[ModuleProgressResponse] = []


class ResumeLesson(BaseModel):
    lesson_id: UUID
    title: str
    slug: str
    module_id: UUID


class UnlockCTA(BaseModel):
    pricing_url: str
    plan: str


class DashboardCTAs(BaseModel):
    """Upsell links, present only for learners without full access"""
    unlock: UnlockCTA
    free_preview_url: str


class DashboardMessages(BaseModel):
    verify_email_required: bool


class DashboardResponse(BaseModel):
    """Schema for the learner dashboard"""

    user: DashboardUser
    course: DashboardCourse
    enrollment: DashboardEnrollment
    progress: DashboardProgress
    resume: Optional[ResumeLesson] = None
    ctas: Optional[DashboardCTAs] = None
    messages: DashboardMessages
