from launchpad.repositories.base import BaseRepository
from launchpad.repositories.user_repo import UserRepository
from launchpad.repositories.auth_token_repo import AuthTokenRepository
from launchpad.repositories.session_repo import SessionRepository
from launchpad.repositories.course_repo import CourseRepository
from launchpad.repositories.enrollment_repo import EnrollmentRepository
from launchpad.repositories.progress_repo import ProgressRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "AuthTokenRepository",
    "SessionRepository",
    "CourseRepository",
    "EnrollmentRepository",
    "ProgressRepository",
]
