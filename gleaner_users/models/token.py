"""ORM models for revoked JWTs and failed login attempts."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, String

from gleaner_users.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RevokedToken(Base):
    """JWT id invalidated by logout; kept until the token would have expired."""

    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    jti = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)


class LoginAttempt(Base):
    """A failed login, counted per IP and username for throttling."""

    __tablename__ = "login_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String(64), nullable=False, default="", index=True)
    username = Column(String(320), nullable=False, index=True)
    time = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
