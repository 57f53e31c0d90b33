import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, DateTime
from .database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=True)  # None for federated-only accounts
    display_name = Column(String, nullable=True)
    provider = Column(String(16), nullable=False, default="password")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class RevokedToken(Base):
    """Access tokens invalidated by sign-out, keyed by their ``jti`` claim."""
    __tablename__ = "revoked_tokens"

    jti = Column(String(64), primary_key=True)
    revoked_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
