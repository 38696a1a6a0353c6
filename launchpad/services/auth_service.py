import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.models import User, Session
from launchpad.models.auth_token import PURPOSE_EMAIL_VERIFICATION, PURPOSE_PASSWORD_RESET
from launchpad.repositories.user_repo import UserRepository
from launchpad.repositories.session_repo import SessionRepository
from launchpad.schemas.auth import (
    SignupRequest,
    LoginRequest,
    TokenResponse,
    TokenRefreshResponse,
    UserResponse,
)
from launchpad.core.exceptions import (
    BotCheckFailedError,
    EmailDeliveryError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidInputError,
    UnauthorizedError,
)
from launchpad.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    get_password_hash,
    normalize_email,
    password_policy_violation,
    verify_password,
    verify_token,
)
from launchpad.services.token_store import TokenStore
from launchpad.utils.datetime_utils import as_utc, utcnow
from launchpad.utils import email as email_delivery
from launchpad.utils.turnstile import verify_turnstile_token

from launchpad.core.config import settings

logger = logging.getLogger(__name__)

SIGNUP_MESSAGE = "Check your email to verify your account."
VERIFIED_MESSAGE = "Email verified. You can sign in now."
RESEND_UNKNOWN_MESSAGE = "If an account exists, a new verification email was sent."
RESEND_ALREADY_VERIFIED_MESSAGE = "Account is already verified. You can sign in."
RESEND_SENT_MESSAGE = "Verification email sent. Check your inbox."
RESET_REQUEST_MESSAGE = "If an account exists with this email, you will receive a reset link."
RESET_DONE_MESSAGE = "Password updated. You can sign in now."


class AuthService:
    """
    Service class for authentication operations.

    Signup, email verification, credential login with server-side sessions,
    and password reset. Single-use email secrets go through TokenStore.
    """
    def __init__(self, db: AsyncSession):
        """
        Initialize with database session.

        Args:
            db: AsyncSession instance
        """
        self.db = db
        self.user_repo = UserRepository(db)
        self.session_repo = SessionRepository(db)
        self.token_store = TokenStore(db)

    # ============================================================
    # Signup
    # ============================================================
    async def signup(self, data: SignupRequest) -> User:
        """
        Create an unverified user and email a verification link.

        Raises:
            BotCheckFailedError: turnstile token supplied and rejected
            EmailExistsError: email already registered
            EmailDeliveryError: the verification email could not be sent
        """
        await self._check_bot(data.turnstile_token)

        email = normalize_email(data.email)
        if await self.user_repo.get_by_email(email):
            raise EmailExistsError()

        try:
            user = await self.user_repo.add_user(
                email=email,
                password_hash=get_password_hash(data.password),
                full_name=data.full_name,
            )
        except IntegrityError:
            # A concurrent signup claimed the email after the lookup
            await self.db.rollback()
            raise EmailExistsError()

        raw_token = await self.token_store.issue(
            PURPOSE_EMAIL_VERIFICATION,
            identifier=email,
            user_id=user.id,
        )
        await self.db.commit()
        logger.info(f"User {user.id} signed up")

        if not await email_delivery.send_verification_email(email, raw_token):
            raise EmailDeliveryError()

        return user

    # ============================================================
    # Email Verification
    # ============================================================
    async def verify_email(self, email: str, token: str) -> User:
        """
        Consume a verification token and mark the email verified.

        Raises:
            InvalidTokenError: unknown, expired or used token
        """
        now = utcnow()
        user = await self.token_store.consume(
            PURPOSE_EMAIL_VERIFICATION,
            identifier=email,
            raw_secret=token,
            now=now,
        )
        if user.email_verified is None:
            user.email_verified = now
        await self.db.commit()

        logger.info(f"User {user.id} verified their email")
        return user

    async def resend_verification(self, email: str) -> str:
        """Issue a fresh verification link. Never reveals whether the email exists."""
        user = await self.user_repo.get_by_email(email)
        if not user:
            return RESEND_UNKNOWN_MESSAGE
        if user.is_verified:
            return RESEND_ALREADY_VERIFIED_MESSAGE

        raw_token = await self.token_store.issue(
            PURPOSE_EMAIL_VERIFICATION,
            identifier=user.email,
            user_id=user.id,
        )
        await self.db.commit()

        if not await email_delivery.send_verification_email(user.email, raw_token):
            logger.warning(f"Verification email resend failed for user {user.id}")
        return RESEND_SENT_MESSAGE

    # ============================================================
    # Credential Authentication
    # ============================================================
    async def authenticate(self, email: str, password: str) -> User:
        """
        Check an email/password pair.

        Unverified users authenticate; verification is enforced downstream.

        Raises:
            InvalidCredentialsError: unknown email, no password set, or mismatch
        """
        user = await self.user_repo.get_by_email(email)

        if not user or not user.password_hash or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        return user

    async def login(self, login_data: LoginRequest) -> TokenResponse:
        """
        Authenticate, open a session and return a token pair.
        """
        user = await self.authenticate(login_data.email, login_data.password)

        now = utcnow()
        user.last_login = now
        session = await self.session_repo.add_session(
            user_id=user.id,
            expires_at=now + timedelta(days=settings.SESSION_EXPIRE_DAYS),
        )
        await self.db.commit()

        logger.info(f"User {user.id} logged in (session {session.id})")
        return self._create_token_response(user, session)

    # ============================================================
    # Token Refresh
    # ============================================================
    async def refresh_token(self, refresh_token: str) -> TokenRefreshResponse:
        """
        Create new access token from refresh token.

        Raises:
            UnauthorizedError: invalid token or revoked session
        """
        user, session = await self._resolve_session(refresh_token, TOKEN_TYPE_REFRESH)

        return TokenRefreshResponse(
            access_token=create_access_token(subject=str(user.id), session_id=str(session.id)),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    # ============================================================
    # Current User / Logout
    # ============================================================
    async def get_current_identity(self, token: str) -> Tuple[User, Session]:
        """
        Resolve a bearer access token to its user and live session.

        Raises:
            UnauthorizedError: invalid token, missing or expired session
        """
        return await self._resolve_session(token, TOKEN_TYPE_ACCESS)

    async def logout(self, session: Session) -> None:
        await self.session_repo.delete_session(session.id)
        await self.db.commit()
        logger.info(f"Session {session.id} closed")

    # ============================================================
    # Password Reset - Request
    # ============================================================
    async def request_password_reset(self, email: str, turnstile_token: Optional[str] = None) -> str:
        """
        Email a reset link if the account exists.

        The answer is the same either way to prevent email enumeration.
        """
        await self._check_bot(turnstile_token)

        user = await self.user_repo.get_by_email(email)
        if user:
            raw_token = await self.token_store.issue(
                PURPOSE_PASSWORD_RESET,
                identifier=user.email,
                user_id=user.id,
            )
            await self.db.commit()

            if not await email_delivery.send_password_reset_email(user.email, raw_token):
                logger.warning(f"Password reset email failed for user {user.id}")

        return RESET_REQUEST_MESSAGE

    # ============================================================
    # Password Reset - Confirm
    # ============================================================
    async def reset_password(self, email: str, token: str, new_password: str) -> None:
        """
        Set a new password with a reset token.

        One unit of work: the token is marked used first (and any failure
        there aborts), then the hash is replaced and every session of the
        user is revoked; a single commit makes all three visible.

        Raises:
            InvalidInputError: new password breaks the policy
            InvalidTokenError: unknown, expired or used token
        """
        violation = password_policy_violation(new_password)
        if violation:
            raise InvalidInputError(violation)

        user = await self.token_store.consume(
            PURPOSE_PASSWORD_RESET,
            identifier=email,
            raw_secret=token,
        )

        await self.user_repo.set_password_hash(user.id, get_password_hash(new_password))
        revoked = await self.session_repo.delete_user_sessions(user.id)
        await self.db.commit()

        logger.info(f"Password reset for user {user.id}; {revoked} session(s) revoked")

        if not await email_delivery.send_password_reset_success_email(user.email):
            logger.warning(f"Password reset confirmation email failed for user {user.id}")

    # ============================================================
    # Helper Methods
    # ============================================================
    async def _check_bot(self, turnstile_token: Optional[str]) -> None:
        if turnstile_token and not await verify_turnstile_token(turnstile_token):
            raise BotCheckFailedError()

    async def _resolve_session(self, token: str, token_type: str) -> Tuple[User, Session]:
        payload = verify_token(token, token_type)
        if not payload:
            raise UnauthorizedError("Invalid or expired token")

        try:
            user_id = uuid.UUID(payload["sub"])
            session_id = uuid.UUID(payload["sid"])
        except ValueError:
            raise UnauthorizedError("Invalid or expired token")

        session = await self.session_repo.get_by_id(session_id)
        if (
            session is None
            or session.user_id != user_id
            or self._session_expired(session, utcnow())
        ):
            raise UnauthorizedError("Session expired. Please sign in again.")

        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise UnauthorizedError("User not found")

        return user, session

    @staticmethod
    def _session_expired(session: Session, now: datetime) -> bool:
        return as_utc(session.expires_at) <= now

    def _create_token_response(self, user: User, session: Session) -> TokenResponse:
        """
        Create token response for a user session.
        """
        access_token = create_access_token(subject=str(user.id), session_id=str(session.id))
        refresh_token = create_refresh_token(subject=str(user.id), session_id=str(session.id))

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=to_user_response(user),
        )


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        email_verified=user.is_verified,
        membership=user.membership,
        created_at=user.created_at,
        last_login=user.last_login,
    )
