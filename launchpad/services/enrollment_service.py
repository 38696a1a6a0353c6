"""
Enrollment Service

Decides a user's access tier for a course from two sources of truth: the
explicit enrollment row and the membership flag on the user's profile.

The precedence rule is one ordered policy function, resolve_enrollment(),
kept free of storage so it can be tested on its own. Time-based expiry is
evaluated there, at read time, and nowhere else.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.models.enrollment import (
    Enrollment,
    ENROLLMENT_ACTIVE,
    ENROLLMENT_TRIALING,
    ENROLLMENT_EXPIRED,
    ENROLLMENT_GIFTED,
    ENROLLMENT_STATUSES,
)
from launchpad.models.user import User, MEMBERSHIP_PRO
from launchpad.repositories.enrollment_repo import EnrollmentRepository
from launchpad.utils.datetime_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

STATUS_ENROLLED = "enrolled"
STATUS_TRIAL = "trial"
STATUS_EXPIRED = "expired"
STATUS_NOT_ENROLLED = "not_enrolled"

# Statuses that grant access to every lesson
ACCESS_STATUSES = frozenset({STATUS_ENROLLED, STATUS_TRIAL})

# Row statuses that grant access until expires_at; gifted counts as active
_GRANTING_ROW_STATUSES = frozenset({ENROLLMENT_ACTIVE, ENROLLMENT_TRIALING, ENROLLMENT_GIFTED})

SOURCE_SUBSCRIPTION = "subscription"


@dataclass(frozen=True)
class EnrollmentResolution:
    status: str
    source: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def has_access(self) -> bool:
        return self.status in ACCESS_STATUSES


def is_enrolled(status: str) -> bool:
    """True for statuses that unlock the full course (enrolled, trial)."""
    return status in ACCESS_STATUSES


def resolve_enrollment(
    enrollment: Optional[Enrollment],
    membership: Optional[str],
    now: datetime,
) -> EnrollmentResolution:
    """
    Resolve the access tier. First matching rule wins:

    1. row with a past expires_at, or status 'expired'     -> expired
    2. row trialing                                         -> trial
    3. row active or gifted                                 -> enrolled
    4. no granting row (none, or canceled), membership pro  -> enrolled (subscription)
    5. otherwise                                            -> not_enrolled
    """
    if enrollment is not None:
        expires_at = as_utc(enrollment.expires_at)
        lapsed = expires_at is not None and expires_at < as_utc(now)

        if lapsed or enrollment.status == ENROLLMENT_EXPIRED:
            return EnrollmentResolution(
                status=STATUS_EXPIRED,
                source=enrollment.source,
                expires_at=expires_at,
            )

        if enrollment.status in _GRANTING_ROW_STATUSES:
            return EnrollmentResolution(
                status=STATUS_TRIAL if enrollment.status == ENROLLMENT_TRIALING else STATUS_ENROLLED,
                source=enrollment.source,
                expires_at=expires_at,
            )

    if membership == MEMBERSHIP_PRO:
        return EnrollmentResolution(status=STATUS_ENROLLED, source=SOURCE_SUBSCRIPTION)

    return EnrollmentResolution(status=STATUS_NOT_ENROLLED)


class EnrollmentService:
    """Service for resolving and granting course enrollments."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.enrollment_repo = EnrollmentRepository(db)

    async def resolve(
        self,
        user: User,
        course_id,
        now: Optional[datetime] = None,
    ) -> EnrollmentResolution:
        enrollment = await self.enrollment_repo.get(user.id, course_id)
        return resolve_enrollment(enrollment, user.membership, now or utcnow())

    async def grant(
        self,
        user_id,
        course_id,
        status: str = ENROLLMENT_ACTIVE,
        source: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Enrollment:
        """Create or replace the enrollment row for (user, course)."""
        if status not in ENROLLMENT_STATUSES:
            raise ValueError(f"Unknown enrollment status: {status}")

        enrollment = await self.enrollment_repo.upsert(
            user_id=user_id,
            course_id=course_id,
            status=status,
            source=source,
            expires_at=expires_at,
        )
        logger.info(f"Enrollment for user {user_id} in course {course_id} set to {status}")
        return enrollment
