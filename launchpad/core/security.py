from datetime import datetime, timezone, timedelta
from typing import Any, Union, Optional, Dict
import hashlib
import re
import secrets
import uuid

from jose import JWTError, jwt

# Use bcrypt directly to avoid passlib/bcrypt version conflicts
import bcrypt

# =====================================================
# Application Settings
# =====================================================
from launchpad.core.config import settings


# =====================================================
# Password Hashing Context
# =====================================================
class PasswordContext:
    """
    Simple password hashing and verification utility.
    Replaces passlib to avoid version conflicts.
    """

    # bcrypt reads at most 72 bytes; newer releases raise instead of truncating
    MAX_BYTES = 72

    def __init__(self, rounds: int):
        self.rounds = rounds

    @classmethod
    def _secret(cls, password: str) -> bytes:
        return password.encode("utf-8")[:cls.MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a plain-text password using bcrypt.
        """
        return bcrypt.hashpw(
            self._secret(password),
            bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    @classmethod
    def verify(cls, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain-text password against a bcrypt hash.

        bcrypt.checkpw compares in constant time.
        """
        try:
            return bcrypt.checkpw(
                cls._secret(plain_password),
                hashed_password.encode("utf-8")
            )
        except ValueError:
            # Malformed stored hash
            return False


# Password context instance
pwd_context = PasswordContext(rounds=settings.BCRYPT_ROUNDS)


# =====================================================
# Password Policy
# =====================================================
PASSWORD_MIN_LENGTH = 12
PASSWORD_MAX_LENGTH = 72  # characters; hashing keeps the first 72 UTF-8 bytes


def password_policy_violation(password: str) -> Optional[str]:
    """
    Return the message of the first password rule that fails, or None.

    Rules: 12-72 characters, an uppercase letter, a lowercase letter,
    and a number or symbol.
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(password) > PASSWORD_MAX_LENGTH:
        return f"Password must be at most {PASSWORD_MAX_LENGTH} characters"
    if not re.search(r"[A-Z]", password):
        return "Password must include an uppercase letter"
    if not re.search(r"[a-z]", password):
        return "Password must include a lowercase letter"
    if not re.search(r"[0-9]", password) and not re.search(r"[^A-Za-z0-9]", password):
        return "Password must include a number or symbol"
    return None


def validate_password_strength(password: str) -> str:
    """
    Raise ValueError naming the failed rule; return the password otherwise.
    Used by request schemas on signup and reset, never on login.
    """
    message = password_policy_violation(password)
    if message:
        raise ValueError(message)
    return password


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address."""
    return (email or "").strip().lower()


# =====================================================
# Single-use Token Secrets
# =====================================================
TOKEN_BYTES = 32


def generate_token() -> str:
    """Generate a high-entropy hex secret for email links."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token secret. Only this is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# =====================================================
# Token Type Constants
# =====================================================
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


# =====================================================
# JWT Creation Functions
# =====================================================
def _encode(
    subject: Union[str, Any],
    session_id: Union[str, Any],
    token_type: str,
    expires_delta: timedelta,
) -> str:
    # Current UTC time (timezone-aware)
    now = datetime.now(timezone.utc)

    # JWT payload
    to_encode = {
        "exp": now + expires_delta,        # Expiration time
        "sub": str(subject),               # Subject (user ID)
        "sid": str(session_id),            # Server-side session ID
        "type": token_type,                # Token type
        "iat": now,                        # Issued at
        "jti": str(uuid.uuid4())           # Unique token ID
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_access_token(
    subject: Union[str, Any],
    session_id: Union[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token bound to a session.
    """
    return _encode(
        subject,
        session_id,
        TOKEN_TYPE_ACCESS,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    subject: Union[str, Any],
    session_id: Union[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token bound to a session.
    """
    return _encode(
        subject,
        session_id,
        TOKEN_TYPE_REFRESH,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


# =====================================================
# Token Verification Functions
# =====================================================
def verify_token(
    token: str,
    token_type: str = TOKEN_TYPE_ACCESS
) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token and return its payload if valid.
    """
    try:
        # Decode JWT (signature and exp are checked here)
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    # Validate token type
    if payload.get("type") != token_type:
        return None

    if not payload.get("sub") or not payload.get("sid"):
        return None

    return payload


# =====================================================
# Password Utility Functions
# =====================================================
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verify a password against its hashed value.
    """
    if not plain_password or not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return pwd_context.hash(password)
