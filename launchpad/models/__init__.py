from launchpad.models.base import Base
from launchpad.models.user import User
from launchpad.models.auth_token import AuthToken
from launchpad.models.session import Session
from launchpad.models.course import Course, CourseModule, Lesson
from launchpad.models.enrollment import Enrollment
from launchpad.models.lesson_progress import UserLessonProgress

__all__ = [
    "Base",
    "User",
    "AuthToken",
    "Session",
    "Course",
    "CourseModule",
    "Lesson",
    "Enrollment",
    "UserLessonProgress",
]
