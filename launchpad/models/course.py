from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Uuid, UniqueConstraint, false
from sqlalchemy.orm import relationship
from .base import BaseModel


class Course(BaseModel):
    __tablename__ = "courses"

    title = Column(String(200), nullable=False)
    slug = Column(String(200), unique=True, nullable=False, index=True)

    # Relationships - Course OWNS its modules
    modules = relationship(
        "CourseModule",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseModule.position",
    )
    enrollments = relationship("Enrollment", back_populates="course", cascade="all, delete-orphan")


class CourseModule(BaseModel):
    __tablename__ = "course_modules"

    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    # Display and iteration order within the course
    position = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("course_id", "position", name="uq_course_modules_course_position"),
    )

    course = relationship("Course", back_populates="modules")
    lessons = relationship(
        "Lesson",
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="Lesson.position",
    )


class Lesson(BaseModel):
    __tablename__ = "lessons"

    module_id = Column(Uuid(as_uuid=True), ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False)
    position = Column(Integer, nullable=False)
    # Reachable without enrollment
    is_free_preview = Column(Boolean, default=False, server_default=false(), nullable=False)

    __table_args__ = (
        UniqueConstraint("module_id", "position", name="uq_lessons_module_position"),
    )

    module = relationship("CourseModule", back_populates="lessons")
