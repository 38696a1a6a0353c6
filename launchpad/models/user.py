from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from .base import BaseModel

MEMBERSHIP_FREE = "free"
MEMBERSHIP_PRO = "pro"


class User(BaseModel):
    __tablename__ = "users"

    # Always stored lowercase and trimmed
    email = Column(String(255), unique=True, nullable=False, index=True)
    # NULL for accounts that never set a password (OAuth-only)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(100), nullable=True)
    email_verified = Column(DateTime(timezone=True), nullable=True)
    membership = Column(String(20), default=MEMBERSHIP_FREE, server_default=MEMBERSHIP_FREE, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Relationships - User OWNS these
    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan")
    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")
    lesson_progress = relationship("UserLessonProgress", back_populates="user", cascade="all, delete-orphan")

    # Tokens outlive the user as an audit trail (user_id SET NULL)
    auth_tokens = relationship("AuthToken", back_populates="user", passive_deletes=True)

    @property
    def is_verified(self) -> bool:
        return self.email_verified is not None
