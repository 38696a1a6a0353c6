from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID

from launchpad.core.security import normalize_email, validate_password_strength


class _EmailNormalizingModel(BaseModel):
    """Lowercases and trims the email before format validation."""

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email_field(cls, v):
        if isinstance(v, str):
            return normalize_email(v)
        return v


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class SignupRequest(_EmailNormalizingModel):
    """Schema for account creation"""

    email: EmailStr
    password: str = Field(description="12-72 characters, upper, lower, and a number or symbol")
    full_name: Optional[str] = Field(default=None, max_length=100)
    turnstile_token: Optional[str] = None

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: Optional[str]) -> Optional[str]:
        """Remove extra whitespace from name"""
        if v is None:
            return None
        return " ".join(v.split()) or None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "learner@launchpad.dev",
                "password": "SecurePass-2024",
                "full_name": "Ada Lovelace"
            }
        }
    )


class LoginRequest(_EmailNormalizingModel):
    """Schema for login. The password policy is not applied here."""

    email: EmailStr
    password: str = Field(min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "learner@launchpad.dev",
                "password": "SecurePass-2024"
            }
        }
    )


class RefreshTokenRequest(BaseModel):
    """Schema for token refresh request"""

    refresh_token: str


class ResendVerificationRequest(_EmailNormalizingModel):
    email: EmailStr


class PasswordResetRequest(_EmailNormalizingModel):
    """Schema for password reset request"""
    email: EmailStr
    turnstile_token: Optional[str] = None


class PasswordResetConfirm(_EmailNormalizingModel):
    """Schema for setting new password after reset"""
    email: EmailStr
    token: str = Field(min_length=1, description="Reset secret from the email link")
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return validate_password_strength(v)


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class MessageResponse(BaseModel):
    """Schema for simple message responses"""
    message: str


class UserResponse(BaseModel):
    """Schema for user data in responses (NO password!)"""

    id: UUID
    email: str
    full_name: Optional[str] = None
    email_verified: bool
    membership: str
    created_at: datetime
    last_login: Optional[datetime] = None


class TokenResponse(BaseModel):
    """Schema for authentication token response"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires
    user: UserResponse


class TokenRefreshResponse(BaseModel):
    """Schema for token refresh response"""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Schema for error responses"""

    code: str
    message: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "INVALID_TOKEN",
                "message": "This link is invalid or has expired."
            }
        }
    )
