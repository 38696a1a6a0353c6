from sqlalchemy import Column, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship
from .base import TimestampMixin
from launchpad.db.database import Base


class UserLessonProgress(TimestampMixin, Base):
    __tablename__ = "user_lesson_progress"

    # One row per (user, lesson); upserted on view and completion
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    lesson_id = Column(Uuid(as_uuid=True), ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    last_viewed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="lesson_progress")
    lesson = relationship("Lesson")

    def __repr__(self):
        return f"<UserLessonProgress(user_id={self.user_id}, lesson_id={self.lesson_id})>"
