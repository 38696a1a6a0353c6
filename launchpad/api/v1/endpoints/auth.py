from typing import Tuple

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.db.database import get_db
from launchpad.schemas.auth import (
    SignupRequest,
    LoginRequest,
    TokenResponse,
    TokenRefreshResponse,
    RefreshTokenRequest,
    ResendVerificationRequest,
    UserResponse,
    ErrorResponse,
    PasswordResetRequest,
    PasswordResetConfirm,
    MessageResponse,
)
from launchpad.services.auth_service import (
    AuthService,
    RESET_DONE_MESSAGE,
    SIGNUP_MESSAGE,
    VERIFIED_MESSAGE,
    to_user_response,
)
from launchpad.api.deps import get_current_identity, get_current_user
from launchpad.models import User, Session

# ============================================================
# Router Setup
# ============================================================

router = APIRouter(tags=["Authentication"])


# ============================================================
# Signup Endpoint
# ============================================================

@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Account created, verification email sent"},
        400: {"model": ErrorResponse, "description": "Invalid input or bot check failed"},
        409: {"model": ErrorResponse, "description": "Email already exists"},
        500: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    }
)
async def signup(
    signup_data: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Create an account with email and password.

    - **email**: Email address (case-insensitive)
    - **password**: 12-72 characters with upper, lower, and a number or symbol
    - **turnstile_token**: Bot-check token from the signup form, when present

    The account stays unverified until the emailed link is opened.
    """
    auth_service = AuthService(db)
    await auth_service.signup(signup_data)
    return MessageResponse(message=SIGNUP_MESSAGE)


# ============================================================
# Email Verification Endpoints
# ============================================================

@router.get(
    "/verify",
    response_model=MessageResponse,
    responses={
        200: {"description": "Email verified"},
        400: {"model": ErrorResponse, "description": "Invalid or expired link"},
    }
)
async def verify_email(
    email: str = Query(min_length=1),
    token: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """Verify an email address from the link sent at signup."""
    auth_service = AuthService(db)
    await auth_service.verify_email(email, token)
    return MessageResponse(message=VERIFIED_MESSAGE)


@router.post(
    "/verify/resend",
    response_model=MessageResponse,
)
async def resend_verification(
    request_data: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db)
):
    """Send a fresh verification link."""
    auth_service = AuthService(db)
    message = await auth_service.resend_verification(request_data.email)
    return MessageResponse(message=message)


# ============================================================
# Login Endpoint
# ============================================================
@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        200: {"description": "Login successful"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    }
)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate user and get tokens.

    - **email**: Registered email address
    - **password**: Account password

    Returns access token (short-lived) and refresh token (long-lived),
    both bound to a new server-side session.
    """
    auth_service = AuthService(db)
    return await auth_service.login(login_data)


# ============================================================
# Token Refresh Endpoint
# ============================================================

@router.post(
    "/refresh",
    response_model=TokenRefreshResponse,
    responses={
        200: {"description": "Token refreshed successfully"},
        401: {"model": ErrorResponse, "description": "Invalid refresh token"},
    }
)
async def refresh_token(
    token_data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Get new access token using refresh token.

    Fails once the session behind the token has been closed.
    """
    auth_service = AuthService(db)
    return await auth_service.refresh_token(token_data.refresh_token)


# ============================================================
# Logout Endpoint
# ============================================================

@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def logout(
    identity: Tuple[User, Session] = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Close the current session. Its access and refresh tokens stop working."""
    _, session = identity
    auth_service = AuthService(db)
    await auth_service.logout(session)
    return MessageResponse(message="Signed out.")


# ============================================================
# Get Current User Endpoint
# ============================================================

@router.get(
    "/me",
    response_model=UserResponse,
    responses={
        200: {"description": "Current user info"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    }
)
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """
    Get current authenticated user's information.

    Requires valid access token in Authorization header:
    `Authorization: Bearer <access_token>`
    """
    return to_user_response(current_user)


# ============================================================
# Password Reset Endpoints
# ============================================================

@router.post(
    "/password/reset-request",
    response_model=MessageResponse,
    responses={
        200: {"description": "Reset link sent if email exists"},
        400: {"model": ErrorResponse, "description": "Bot check failed"},
    }
)
async def request_password_reset(
    request_data: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Request a password reset link.

    For security, always returns the same message even if the email doesn't exist.
    """
    auth_service = AuthService(db)
    message = await auth_service.request_password_reset(
        request_data.email,
        request_data.turnstile_token,
    )
    return MessageResponse(message=message)


@router.post(
    "/password/reset-confirm",
    response_model=MessageResponse,
    responses={
        200: {"description": "Password reset successfully"},
        400: {"model": ErrorResponse, "description": "Invalid input or expired link"},
    }
)
async def reset_password(
    request_data: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db)
):
    """
    Set a new password using the emailed reset link.

    - **email**: Email address that requested the reset
    - **token**: Secret from the reset link
    - **new_password**: New password (must meet strength requirements)

    Every existing session of the account is signed out.
    """
    auth_service = AuthService(db)
    await auth_service.reset_password(
        request_data.email,
        request_data.token,
        request_data.new_password,
    )
    return MessageResponse(message=RESET_DONE_MESSAGE)
