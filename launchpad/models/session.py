"""
Session Model

Server-side login sessions. Access and refresh JWTs carry the session id, so
deleting a row (logout, password reset) revokes every token issued for it.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from .base import BaseModel


class Session(BaseModel):
    __tablename__ = "sessions"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="sessions")
