from datetime import timedelta

from sqlalchemy import func, select

from launchpad.api.deps import get_dashboard_rate_limiter
from launchpad.core.rate_limit import InMemoryRateLimiter
from launchpad.main import app
from launchpad.models import Course, Lesson, UserLessonProgress
from launchpad.services.enrollment_service import EnrollmentService
from launchpad.utils.datetime_utils import utcnow

DASHBOARD = "/api/v1/dashboard"


async def test_requires_authentication_before_rate_limiting(client):
    class CountingLimiter(InMemoryRateLimiter):
        calls = 0

        async def check(self, key):
            CountingLimiter.calls += 1
            return await super().check(key)

    limiter = CountingLimiter(limit=30)
    app.dependency_overrides[get_dashboard_rate_limiter] = lambda: limiter

    response = await client.get(DASHBOARD)

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    assert CountingLimiter.calls == 0


async def test_rate_limited_per_user(client, make_user, login):
    limiter = InMemoryRateLimiter(limit=2)
    app.dependency_overrides[get_dashboard_rate_limiter] = lambda: limiter
    await make_user(email="one@launchpad.dev")
    await make_user(email="two@launchpad.dev")
    one = await login(email="one@launchpad.dev")
    two = await login(email="two@launchpad.dev")

    statuses = [(await client.get(DASHBOARD, headers=one)).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    limited = await client.get(DASHBOARD, headers=one)
    assert limited.json() == {"code": "RATE_LIMIT", "message": "Too many requests"}
    assert (await client.get(DASHBOARD, headers=two)).status_code == 200


async def test_seeds_default_course_when_catalog_is_empty(client, make_user, login, session_factory):
    await make_user(verified=False)
    headers = await login()

    response = await client.get(DASHBOARD, headers=headers)

    assert response.status_code == 200
    assert response.headers["cache-control"] == "private, max-age=30"
    data = response.json()
    assert data["course"]["slug"] == "devops-launchpad"
    assert data["course"]["title"] == "DevOps Launchpad"
    assert data["enrollment"] == {"status": "not_enrolled", "source": None, "expires_at": None}
    assert data["messages"] == {"verify_email_required": True}
    assert data["user"]["email"] == "learner@launchpad.dev"
    assert data["user"]["name"] == "Ada Lovelace"
    assert data["user"]["email_verified"] is False

    [module] = data["progress"]["modules"]
    assert module["title"] == "Getting Started"
    assert (module["completed"], module["total"], module["percent"]) == (0, 1, 0)
    assert data["resume"]["slug"] == "course-introduction"

    # Seeded once
    await client.get(DASHBOARD, headers=headers)
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(Course)) == 1
        assert await session.scalar(select(func.count()).select_from(Lesson)) == 1


async def test_unknown_course_is_not_found(client, make_user, login):
    await make_user()
    headers = await login()

    response = await client.get(DASHBOARD, params={"course_id": "no-such-course"}, headers=headers)

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


async def test_not_enrolled_learner_sees_previews_and_ctas(client, make_user, make_course, login):
    await make_user()
    course, modules = await make_course({"Module A": [True, False, False], "Module B": [False, False]})
    headers = await login()

    response = await client.get(DASHBOARD, params={"course_id": str(course.id)}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    module_a, module_b = data["progress"]["modules"]
    assert (module_a["total"], module_a["completed"], module_a["percent"]) == (1, 0, 0)
    assert module_a["next_lesson"]["locked"] is False
    assert (module_b["total"], module_b["percent"]) == (0, 0)
    assert module_b["next_lesson"] is None

    free_preview = modules[0][1][0]
    assert data["resume"]["lesson_id"] == str(free_preview.id)
    assert data["ctas"] == {
        "unlock": {"pricing_url": "/pricing", "plan": "Full course access"},
        "free_preview_url": "/preview",
    }
    assert data["messages"]["verify_email_required"] is False


async def test_enrolled_learner_resumes_most_recent_view(
    client, make_user, make_course, login, session_factory
):
    user = await make_user()
    course, modules = await make_course({"Module A": [True, False, False], "Module B": [False, False]})
    lesson_a1, lesson_a2, _ = modules[0][1]
    lesson_b1 = modules[1][1][0]
    now = utcnow()

    async with session_factory() as session:
        await EnrollmentService(session).grant(user.id, course.id, status="active", source="stripe")
        session.add_all([
            UserLessonProgress(
                user_id=user.id, lesson_id=lesson_a1.id,
                completed_at=now - timedelta(hours=3), last_viewed_at=now - timedelta(hours=3),
            ),
            UserLessonProgress(user_id=user.id, lesson_id=lesson_a2.id, last_viewed_at=now - timedelta(minutes=5)),
            UserLessonProgress(user_id=user.id, lesson_id=lesson_b1.id, last_viewed_at=now - timedelta(hours=1)),
        ])
        await session.commit()

    headers = await login()
    response = await client.get(DASHBOARD, params={"course_id": course.slug}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["enrollment"]["status"] == "enrolled"
    assert data["enrollment"]["source"] == "stripe"
    assert data["ctas"] is None
    assert data["resume"]["lesson_id"] == str(lesson_a2.id)
    assert data["resume"]["module_id"] == str(modules[0][0].id)
    assert data["progress"]["overall_percent"] == 20
    assert data["progress"]["modules"][0]["percent"] == 33
    assert data["progress"]["last_activity_at"] is not None


async def test_pro_membership_unlocks_everything(client, make_user, make_course, login):
    await make_user(membership="pro")
    await make_course({"Module A": [True, False]})
    headers = await login()

    data = (await client.get(DASHBOARD, headers=headers)).json()

    assert data["enrollment"]["status"] == "enrolled"
    assert data["enrollment"]["source"] == "subscription"
    assert data["progress"]["modules"][0]["total"] == 2
    assert data["ctas"] is None
