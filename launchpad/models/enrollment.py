from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
from .base import TimestampMixin
from launchpad.db.database import Base

ENROLLMENT_ACTIVE = "active"
ENROLLMENT_TRIALING = "trialing"
ENROLLMENT_CANCELED = "canceled"
ENROLLMENT_EXPIRED = "expired"
ENROLLMENT_GIFTED = "gifted"

ENROLLMENT_STATUSES = (
    ENROLLMENT_ACTIVE,
    ENROLLMENT_TRIALING,
    ENROLLMENT_CANCELED,
    ENROLLMENT_EXPIRED,
    ENROLLMENT_GIFTED,
)


class Enrollment(TimestampMixin, Base):
    __tablename__ = "enrollments"

    # At most one row per (user, course)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True)

    status = Column(String(20), nullable=False)
    # e.g. subscription | one_time
    source = Column(String(50), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'trialing', 'canceled', 'expired', 'gifted')",
            name="ck_enrollments_status",
        ),
    )

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    def __repr__(self):
        return f"<Enrollment(user_id={self.user_id}, course_id={self.course_id}, status={self.status})>"
