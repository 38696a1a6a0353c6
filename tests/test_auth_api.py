from datetime import timedelta

from sqlalchemy import func, select

from launchpad.core.security import verify_password
from launchpad.models import AuthToken, Session, User
from launchpad.models.auth_token import PURPOSE_EMAIL_VERIFICATION, PURPOSE_PASSWORD_RESET
from launchpad.repositories.user_repo import UserRepository
from launchpad.services.token_store import TokenStore
from launchpad.utils.datetime_utils import as_utc, utcnow
from tests.conftest import TEST_PASSWORD

SIGNUP = "/api/v1/auth/signup"
NEW_PASSWORD = "Brand-New-Secret-7"


def signup_body(**overrides):
    body = {"email": "new@launchpad.dev", "password": TEST_PASSWORD, "full_name": "Grace Hopper"}
    body.update(overrides)
    return body


# ============================================================
# Signup
# ============================================================

async def test_signup_rejects_short_password(client, session_factory):
    response = await client.post(SIGNUP, json=signup_body(password="short1"))

    assert response.status_code == 400
    assert response.json() == {
        "code": "INVALID_INPUT",
        "message": "Password must be at least 12 characters",
    }
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 0


async def test_signup_rejects_bad_email(client):
    response = await client.post(SIGNUP, json=signup_body(email="not-an-email"))

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


async def test_signup_rejects_existing_email(client, make_user):
    await make_user(email="taken@launchpad.dev")

    response = await client.post(SIGNUP, json=signup_body(email="Taken@LaunchPad.dev"))

    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_EXISTS"


async def test_signup_accepts_multibyte_password(client):
    password = "Aa1" + "é" * 69

    response = await client.post(SIGNUP, json=signup_body(password=password))
    assert response.status_code == 201

    login = await client.post(
        "/api/v1/auth/login",
        json={"email": "new@launchpad.dev", "password": password},
    )
    assert login.status_code == 200


async def test_signup_race_on_email_reports_conflict(client, make_user, monkeypatch):
    await make_user(email="new@launchpad.dev")

    # Another request inserted the row after this one looked it up
    async def not_found(self, email):
        return None

    monkeypatch.setattr(UserRepository, "get_by_email", not_found)

    response = await client.post(SIGNUP, json=signup_body())

    assert response.status_code == 409
    assert response.json()["code"] == "EMAIL_EXISTS"


async def test_signup_creates_unverified_user_and_one_day_token(client, session_factory, outbox):
    before = utcnow()
    response = await client.post(SIGNUP, json=signup_body(email=" New@LaunchPad.dev "))

    assert response.status_code == 201
    assert response.json() == {"message": "Check your email to verify your account."}

    async with session_factory() as session:
        users = (await session.execute(select(User))).scalars().all()
        tokens = (await session.execute(select(AuthToken))).scalars().all()

    assert len(users) == 1
    assert users[0].email == "new@launchpad.dev"
    assert users[0].email_verified is None
    assert users[0].password_hash != TEST_PASSWORD

    assert len(tokens) == 1
    token = tokens[0]
    assert token.purpose == PURPOSE_EMAIL_VERIFICATION
    assert token.identifier == "new@launchpad.dev"
    assert token.user_id == users[0].id
    expires_in = as_utc(token.expires_at) - before
    assert timedelta(hours=23, minutes=59) < expires_in <= timedelta(hours=24, minutes=1)

    sent = outbox.last("verification")
    assert sent.email == "new@launchpad.dev"
    assert sent.token and sent.token != token.token_hash


async def test_signup_bot_check(client, turnstile, session_factory):
    turnstile.passes = False

    response = await client.post(SIGNUP, json=signup_body(turnstile_token="widget-token"))

    assert response.status_code == 400
    assert response.json()["code"] == "TURNSTILE_FAILED"
    async with session_factory() as session:
        assert await session.scalar(select(func.count()).select_from(User)) == 0


async def test_signup_without_bot_token_skips_check(client, turnstile):
    turnstile.passes = False

    response = await client.post(SIGNUP, json=signup_body())

    assert response.status_code == 201
    assert turnstile.calls == 0


async def test_signup_email_failure(client, outbox):
    outbox.fail = True

    response = await client.post(SIGNUP, json=signup_body())

    assert response.status_code == 500
    assert response.json()["code"] == "EMAIL_FAILED"


# ============================================================
# Verification
# ============================================================

async def test_verify_email_link_works_once(client, outbox, session_factory):
    await client.post(SIGNUP, json=signup_body())
    token = outbox.last("verification").token
    params = {"email": "new@launchpad.dev", "token": token}

    response = await client.get("/api/v1/auth/verify", params=params)
    assert response.status_code == 200

    async with session_factory() as session:
        user = (await session.execute(select(User))).scalar_one()
        assert user.email_verified is not None

    again = await client.get("/api/v1/auth/verify", params=params)
    assert again.status_code == 400
    assert again.json() == {"code": "INVALID_TOKEN", "message": "This link is invalid or has expired."}


async def test_verify_email_rejects_unknown_token(client, make_user):
    await make_user(verified=False)

    response = await client.get(
        "/api/v1/auth/verify",
        params={"email": "learner@launchpad.dev", "token": "f" * 64},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TOKEN"


async def test_resend_verification(client, make_user, outbox):
    await make_user(email="pending@launchpad.dev", verified=False)
    await make_user(email="done@launchpad.dev", verified=True)

    unknown = await client.post("/api/v1/auth/verify/resend", json={"email": "ghost@launchpad.dev"})
    done = await client.post("/api/v1/auth/verify/resend", json={"email": "done@launchpad.dev"})
    pending = await client.post("/api/v1/auth/verify/resend", json={"email": "pending@launchpad.dev"})

    assert unknown.status_code == done.status_code == pending.status_code == 200
    assert done.json()["message"] == "Account is already verified. You can sign in."
    assert [m.email for m in outbox.messages] == ["pending@launchpad.dev"]


# ============================================================
# Login / sessions
# ============================================================

async def test_login_returns_tokens_and_user(client, make_user):
    await make_user(verified=False)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "LEARNER@launchpad.dev", "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["user"]["email"] == "learner@launchpad.dev"
    assert data["user"]["email_verified"] is False
    assert data["user"]["last_login"] is not None


async def test_login_failures_are_generic(client, make_user):
    await make_user()

    wrong_password = await client.post(
        "/api/v1/auth/login",
        json={"email": "learner@launchpad.dev", "password": "Wrong-Password-1"},
    )
    unknown_user = await client.post(
        "/api/v1/auth/login",
        json={"email": "ghost@launchpad.dev", "password": TEST_PASSWORD},
    )

    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {
        "code": "UNAUTHORIZED",
        "message": "Invalid email or password",
    }


async def test_me_requires_token(client):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


async def test_me_and_logout(client, make_user, login):
    await make_user()
    headers = await login()

    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["full_name"] == "Ada Lovelace"
    assert me.json()["membership"] == "free"

    logout = await client.post("/api/v1/auth/logout", headers=headers)
    assert logout.status_code == 200

    after = await client.get("/api/v1/auth/me", headers=headers)
    assert after.status_code == 401


async def test_refresh_issues_new_access_token(client, make_user):
    await make_user()
    tokens = (await client.post(
        "/api/v1/auth/login",
        json={"email": "learner@launchpad.dev", "password": TEST_PASSWORD},
    )).json()

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200

    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

    # An access token is not a refresh token
    bad = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert bad.status_code == 401


# ============================================================
# Password reset
# ============================================================

async def test_reset_request_does_not_reveal_accounts(client, make_user, outbox):
    await make_user()

    known = await client.post("/api/v1/auth/password/reset-request", json={"email": "learner@launchpad.dev"})
    unknown = await client.post("/api/v1/auth/password/reset-request", json={"email": "ghost@launchpad.dev"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert [m.email for m in outbox.messages] == ["learner@launchpad.dev"]
    assert outbox.last("reset").token


async def test_reset_confirm_changes_password_and_revokes_sessions(client, make_user, login, outbox, session_factory):
    await make_user()
    headers = await login()
    await client.post("/api/v1/auth/password/reset-request", json={"email": "learner@launchpad.dev"})
    token = outbox.last("reset").token

    response = await client.post(
        "/api/v1/auth/password/reset-confirm",
        json={"email": "learner@launchpad.dev", "token": token, "new_password": NEW_PASSWORD},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Password updated. You can sign in now."}
    assert outbox.last("reset_success").email == "learner@launchpad.dev"

    async with session_factory() as session:
        user = (await session.execute(select(User))).scalar_one()
        assert verify_password(NEW_PASSWORD, user.password_hash)
        assert await session.scalar(select(func.count()).select_from(Session)) == 0

    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 401
    await login(password=NEW_PASSWORD)


async def test_reset_confirm_with_used_token_changes_nothing(client, make_user, session_factory):
    user = await make_user()
    async with session_factory() as session:
        raw = await TokenStore(session).issue(PURPOSE_PASSWORD_RESET, user.email, user.id)
        await session.commit()
        token = (await session.execute(select(AuthToken))).scalar_one()
        token.used_at = utcnow()
        await session.commit()

    response = await client.post(
        "/api/v1/auth/password/reset-confirm",
        json={"email": user.email, "token": raw, "new_password": NEW_PASSWORD},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_TOKEN"
    async with session_factory() as session:
        stored = await session.get(User, user.id)
        assert verify_password(TEST_PASSWORD, stored.password_hash)
        assert not verify_password(NEW_PASSWORD, stored.password_hash)


async def test_reset_confirm_checks_policy_before_token(client, make_user, outbox):
    await make_user()
    await client.post("/api/v1/auth/password/reset-request", json={"email": "learner@launchpad.dev"})
    token = outbox.last("reset").token

    weak = await client.post(
        "/api/v1/auth/password/reset-confirm",
        json={"email": "learner@launchpad.dev", "token": token, "new_password": "weakpassword"},
    )
    assert weak.status_code == 400
    assert weak.json()["code"] == "INVALID_INPUT"

    # The token was not spent by the rejected attempt
    ok = await client.post(
        "/api/v1/auth/password/reset-confirm",
        json={"email": "learner@launchpad.dev", "token": token, "new_password": NEW_PASSWORD},
    )
    assert ok.status_code == 200
