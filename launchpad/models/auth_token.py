"""
Auth Token Model

Purpose-scoped, single-use secrets for email verification and password reset.
Only the SHA-256 hash of the secret is stored. Rows are never deleted: a token
is dead once used_at is set or expires_at has passed.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
from .base import BaseModel

PURPOSE_EMAIL_VERIFICATION = "email_verification"
PURPOSE_PASSWORD_RESET = "password_reset"

TOKEN_PURPOSES = (PURPOSE_EMAIL_VERIFICATION, PURPOSE_PASSWORD_RESET)


class AuthToken(BaseModel):
    __tablename__ = "auth_tokens"

    purpose = Column(String(32), nullable=False)
    # Normalized email the token was issued for
    identifier = Column(String(255), nullable=False)
    token_hash = Column(String(64), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    __table_args__ = (
        Index("ix_auth_tokens_lookup", "purpose", "identifier", "token_hash"),
    )

    # Relationship
    user = relationship("User", back_populates="auth_tokens")
