import uuid
from datetime import timedelta

from sqlalchemy import func, select

from launchpad.models import CourseModule, Lesson, UserLessonProgress
from launchpad.repositories.progress_repo import ProgressRepository
from launchpad.services.enrollment_service import EnrollmentService
from launchpad.utils.datetime_utils import utcnow

COURSES = "/api/v1/courses"


async def test_outline_flags_locked_lessons(client, make_user, make_course, login):
    await make_user()
    course, _ = await make_course({"Module A": [True, False], "Module B": [False]})
    headers = await login()

    response = await client.get(f"{COURSES}/{course.slug}", headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["enrollment"]["status"] == "not_enrolled"
    assert [m["title"] for m in data["modules"]] == ["Module A", "Module B"]
    assert [lesson["locked"] for lesson in data["modules"][0]["lessons"]] == [False, True]
    assert [lesson["locked"] for lesson in data["modules"][1]["lessons"]] == [True]


async def test_outline_requires_auth_and_known_course(client, make_user, login):
    assert (await client.get(f"{COURSES}/devops-launchpad")).status_code == 401

    await make_user()
    headers = await login()
    response = await client.get(f"{COURSES}/devops-launchpad", headers=headers)

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


async def test_free_preview_can_be_viewed_and_completed(client, make_user, make_course, login, session_factory):
    user = await make_user()
    course, modules = await make_course({"Module A": [True, False]})
    preview = modules[0][1][0]
    headers = await login()

    viewed = await client.post(f"{COURSES}/{course.slug}/lessons/{preview.id}/view", headers=headers)
    assert viewed.status_code == 200
    assert viewed.json()["completed_at"] is None

    completed = await client.post(f"{COURSES}/{course.id}/lessons/{preview.id}/complete", headers=headers)
    assert completed.status_code == 200
    assert completed.json()["completed_at"] is not None

    async with session_factory() as session:
        rows = (await session.execute(
            select(UserLessonProgress).where(UserLessonProgress.user_id == user.id)
        )).scalars().all()
    assert len(rows) == 1
    assert rows[0].completed_at is not None

    dashboard = (await client.get("/api/v1/dashboard", headers=headers)).json()
    assert dashboard["progress"]["modules"][0]["percent"] == 100


async def test_locked_lesson_is_forbidden(client, make_user, make_course, login):
    await make_user()
    course, modules = await make_course({"Module A": [True, False]})
    locked = modules[0][1][1]
    headers = await login()

    response = await client.post(f"{COURSES}/{course.slug}/lessons/{locked.id}/view", headers=headers)

    assert response.status_code == 403
    assert response.json()["code"] == "LESSON_LOCKED"


async def test_trial_unlocks_lessons(client, make_user, make_course, login, session_factory):
    user = await make_user()
    course, modules = await make_course({"Module A": [True, False]})
    locked = modules[0][1][1]
    async with session_factory() as session:
        await EnrollmentService(session).grant(user.id, course.id, status="trialing", source="promo")
    headers = await login()

    response = await client.post(f"{COURSES}/{course.slug}/lessons/{locked.id}/complete", headers=headers)

    assert response.status_code == 200


async def test_lesson_must_belong_to_course(client, make_user, make_course, login):
    await make_user()
    course, _ = await make_course({"Module A": [True]})
    other, other_modules = await make_course({"Other": [True]}, slug="other-course", title="Other")
    foreign = other_modules[0][1][0]
    headers = await login()

    response = await client.post(f"{COURSES}/{course.slug}/lessons/{foreign.id}/view", headers=headers)
    assert response.status_code == 404

    missing = await client.post(f"{COURSES}/{course.slug}/lessons/{uuid.uuid4()}/view", headers=headers)
    assert missing.status_code == 404


async def test_fixture_course_persists_modules_and_lessons(make_course, session_factory):
    await make_course({"Module A": [True, False], "Module B": [False]})

    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(CourseModule)) == 2
        assert await session.scalar(select(func.count()).select_from(Lesson)) == 3


async def test_progress_upsert_updates_row_inserted_concurrently(
    make_user, make_course, session_factory, monkeypatch
):
    user = await make_user()
    _, modules = await make_course({"Module A": [True]})
    lesson = modules[0][1][0]
    async with session_factory() as session:
        session.add(UserLessonProgress(
            user_id=user.id, lesson_id=lesson.id, last_viewed_at=utcnow() - timedelta(hours=1),
        ))
        await session.commit()

    async with session_factory() as session:
        lookup = session.get
        calls = []

        # First lookup misses the row another request just inserted
        async def stale_get(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                return None
            return await lookup(*args, **kwargs)

        monkeypatch.setattr(session, "get", stale_get)
        row = await ProgressRepository(session).mark_completed(user.id, lesson.id, utcnow())

    assert row.completed_at is not None
    async with session_factory() as session:
        rows = (await session.execute(
            select(UserLessonProgress).where(UserLessonProgress.user_id == user.id)
        )).scalars().all()
    assert len(rows) == 1
    assert rows[0].completed_at is not None
