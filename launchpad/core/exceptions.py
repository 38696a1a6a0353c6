"""
Application Errors

Every failure that reaches a client is one of these. Each carries a stable
machine-readable code, an HTTP status and a human-readable message; the
exception handlers in main.py render them as {"code": ..., "message": ...}.
"""

from typing import Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    code = "SERVER_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidInputError(AppError):
    code = "INVALID_INPUT"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"


class InvalidTokenError(AppError):
    code = "INVALID_TOKEN"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "This link is invalid or has expired."


class BotCheckFailedError(AppError):
    code = "TURNSTILE_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Verification failed. Please try again."


class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class InvalidCredentialsError(UnauthorizedError):
    message = "Invalid email or password"


class LessonLockedError(AppError):
    code = "LESSON_LOCKED"
    status_code = status.HTTP_403_FORBIDDEN
    message = "Enroll to unlock this lesson"


class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class EmailExistsError(AppError):
    code = "EMAIL_EXISTS"
    status_code = status.HTTP_409_CONFLICT
    message = "An account with this email already exists."


class RateLimitError(AppError):
    code = "RATE_LIMIT"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    message = "Too many requests"


class EmailDeliveryError(AppError):
    code = "EMAIL_FAILED"
    message = "Could not send verification email. Please try again."
