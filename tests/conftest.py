import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ.pop("SMTP_SERVER", None)
os.environ.pop("TURNSTILE_SECRET_KEY", None)

from dataclasses import dataclass, field
from typing import List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine, AsyncSession
from sqlalchemy.pool import StaticPool

from launchpad.main import app
from launchpad.db.database import Base, get_db
from launchpad.api.deps import get_dashboard_rate_limiter
from launchpad.core.rate_limit import InMemoryRateLimiter
from launchpad.core.security import get_password_hash
from launchpad.models import Course, CourseModule, Lesson, User
from launchpad.utils import email as email_delivery
from launchpad.services import auth_service as auth_service_module
from launchpad.utils.datetime_utils import utcnow

TEST_PASSWORD = "Correct-Horse-42"


# ============================================================
# Database
# ============================================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================
# Collaborators
# ============================================================

@dataclass
class SentEmail:
    kind: str
    email: str
    token: Optional[str] = None


@dataclass
class Outbox:
    messages: List[SentEmail] = field(default_factory=list)
    fail: bool = False

    def last(self, kind: str) -> SentEmail:
        return [m for m in self.messages if m.kind == kind][-1]


@pytest.fixture
def outbox(monkeypatch):
    """Capture outgoing emails instead of talking to SMTP."""
    box = Outbox()

    def sender(kind):
        async def send(email, token=None):
            box.messages.append(SentEmail(kind=kind, email=email, token=token))
            return not box.fail
        return send

    monkeypatch.setattr(email_delivery, "send_verification_email", sender("verification"))
    monkeypatch.setattr(email_delivery, "send_password_reset_email", sender("reset"))
    monkeypatch.setattr(email_delivery, "send_password_reset_success_email", sender("reset_success"))
    return box


@pytest.fixture
def turnstile(monkeypatch):
    """Bot check stub; set .passes = False to reject."""
    class Stub:
        passes = True
        calls = 0

    stub = Stub()

    async def verify(token):
        stub.calls += 1
        return stub.passes

    monkeypatch.setattr(auth_service_module, "verify_turnstile_token", verify)
    return stub


@pytest.fixture
def rate_limiter():
    return InMemoryRateLimiter(limit=30, window_seconds=60)


# ============================================================
# HTTP client
# ============================================================

@pytest.fixture
async def client(session_factory, rate_limiter, outbox, turnstile):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dashboard_rate_limiter] = lambda: rate_limiter

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================
# Factories
# ============================================================

@pytest.fixture
def make_user(session_factory):
    async def _make_user(
        email: str = "learner@launchpad.dev",
        password: str = TEST_PASSWORD,
        verified: bool = True,
        membership: str = "free",
        full_name: Optional[str] = "Ada Lovelace",
    ) -> User:
        async with session_factory() as session:
            user = User(
                email=email,
                password_hash=get_password_hash(password),
                full_name=full_name,
                email_verified=utcnow() if verified else None,
                membership=membership,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user
    return _make_user


@pytest.fixture
def make_course(session_factory):
    """
    Build a course from a layout like {"Basics": [True, False], "Deep dive": [False]}
    where each bool is the lesson's free-preview flag.
    """
    async def _make_course(layout, slug: str = "devops-launchpad", title: str = "DevOps Launchpad"):
        async with session_factory() as session:
            course = Course(title=title, slug=slug)
            modules = []
            for m_pos, (module_title, previews) in enumerate(layout.items()):
                module = CourseModule(course=course, title=module_title, position=m_pos)
                lessons = [
                    Lesson(
                        module=module,
                        title=f"{module_title} {l_pos + 1}",
                        slug=f"{module_title.lower().replace(' ', '-')}-{l_pos + 1}",
                        position=l_pos,
                        is_free_preview=preview,
                    )
                    for l_pos, preview in enumerate(previews)
                ]
                modules.append((module, lessons))

            # Add the whole graph at once so modules and lessons cascade
            session.add(course)
            await session.commit()
            return course, modules
    return _make_course


@pytest.fixture
def login(client):
    async def _login(email: str = "learner@launchpad.dev", password: str = TEST_PASSWORD) -> dict:
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login
