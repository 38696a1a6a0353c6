"""
Progress Aggregation

Combines the course catalog (modules and lessons in position order) with a
user's sparse per-lesson progress rows into per-module completion, a
next-lesson pointer per module, one cross-module resume target and the
timestamp of the user's latest activity.

Progress is measured only over lessons the learner can reach: every lesson
when enrolled or trialing, free-preview lessons otherwise. Locked lessons are
left out of both numerator and denominator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence

from launchpad.services.enrollment_service import is_enrolled
from launchpad.utils.datetime_utils import as_utc


@dataclass(frozen=True)
class LessonPointer:
    lesson_id: Any
    title: str
    slug: str
    locked: bool


@dataclass(frozen=True)
class ResumeTarget:
    lesson_id: Any
    title: str
    slug: str
    module_id: Any


@dataclass
class ModuleProgress:
    module_id: Any
    title: str
    percent: int
    completed: int
    total: int
    next_lesson: Optional[LessonPointer] = None


@dataclass
class ProgressSummary:
    overall_percent: int
    modules: List[ModuleProgress] = field(default_factory=list)
    resume: Optional[ResumeTarget] = None
    last_activity_at: Optional[datetime] = None


def lesson_is_accessible(lesson, enrollment_status: str) -> bool:
    """A lesson is reachable when the user is enrolled or it is a free preview."""
    return is_enrolled(enrollment_status) or bool(lesson.is_free_preview)


def completion_percent(completed: int, total: int) -> int:
    """round(100 * completed / total), halves rounded up; 0 when total is 0."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def aggregate_progress(
    modules: Sequence[Any],
    lessons_by_module: Mapping[Any, Sequence[Any]],
    progress_by_lesson: Mapping[Any, Any],
    enrollment_status: str,
) -> ProgressSummary:
    """
    Compute dashboard progress for one user and course.

    Args:
        modules: course modules in position order (id, title)
        lessons_by_module: module id -> lessons in position order
            (id, title, slug, is_free_preview)
        progress_by_lesson: lesson id -> progress row
            (completed_at, last_viewed_at); lessons without a row are unseen
        enrollment_status: resolved status (enrolled, trial, expired, not_enrolled)

    Returns:
        ProgressSummary with per-module progress, overall percent, the resume
        target (never a locked lesson) and last_activity_at over every
        progress row given, accessible or not.
    """
    enrolled = is_enrolled(enrollment_status)

    module_results: List[ModuleProgress] = []
    total_accessible = 0
    total_completed = 0

    resume: Optional[ResumeTarget] = None
    resume_viewed_at: Optional[datetime] = None

    for module in modules:
        lessons = lessons_by_module.get(module.id, [])
        accessible = [
            lesson for lesson in lessons
            if lesson_is_accessible(lesson, enrollment_status)
        ]

        completed = 0
        next_lesson: Optional[LessonPointer] = None

        for lesson in accessible:
            progress = progress_by_lesson.get(lesson.id)
            completed_at = getattr(progress, "completed_at", None)
            viewed_at = as_utc(getattr(progress, "last_viewed_at", None))

            if completed_at is not None:
                completed += 1
            elif next_lesson is None:
                next_lesson = LessonPointer(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    slug=lesson.slug,
                    locked=not enrolled and not lesson.is_free_preview,
                )

            # Strictly later only: ties keep the earliest lesson in scan order
            if viewed_at is not None and (resume_viewed_at is None or viewed_at > resume_viewed_at):
                resume_viewed_at = viewed_at
                resume = ResumeTarget(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    slug=lesson.slug,
                    module_id=module.id,
                )

        total = len(accessible)
        total_accessible += total
        total_completed += completed

        module_results.append(
            ModuleProgress(
                module_id=module.id,
                title=module.title,
                percent=completion_percent(completed, total),
                completed=completed,
                total=total,
                next_lesson=next_lesson,
            )
        )

    # Nothing viewed yet: first unlocked next lesson in module order
    if resume is None:
        for result in module_results:
            if result.next_lesson is not None and not result.next_lesson.locked:
                resume = ResumeTarget(
                    lesson_id=result.next_lesson.lesson_id,
                    title=result.next_lesson.title,
                    slug=result.next_lesson.slug,
                    module_id=result.module_id,
                )
                break

    # Still nothing: first free-preview lesson in catalog order
    if resume is None:
        resume = _first_free_preview(modules, lessons_by_module)

    return ProgressSummary(
        overall_percent=completion_percent(total_completed, total_accessible),
        modules=module_results,
        resume=resume,
        last_activity_at=_latest_view(progress_by_lesson.values()),
    )


def _first_free_preview(
    modules: Sequence[Any],
    lessons_by_module: Mapping[Any, Sequence[Any]],
) -> Optional[ResumeTarget]:
    for module in modules:
        for lesson in lessons_by_module.get(module.id, []):
            if lesson.is_free_preview:
                return ResumeTarget(
                    lesson_id=lesson.id,
                    title=lesson.title,
                    slug=lesson.slug,
                    module_id=module.id,
                )
    return None


def _latest_view(rows) -> Optional[datetime]:
    latest: Optional[datetime] = None
    for row in rows:
        viewed_at = as_utc(getattr(row, "last_viewed_at", None))
        if viewed_at is not None and (latest is None or viewed_at > latest):
            latest = viewed_at
    return latest
