"""ORM model for user accounts (identity store)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from gleaner_users.models.base import Base


class User(Base):
    """
    User account for JWT authentication.

    Roles are not stored here; they live in the ACL store keyed by username.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name_first = Column(String(255), nullable=False, default="")
    name_middle = Column(String(255), nullable=False, default="")
    name_last = Column(String(255), nullable=False, default="")
    verified = Column(Boolean, nullable=False, default=False)
    reset_password_hash = Column(String(255), nullable=True)
    reset_password_expires = Column(DateTime(timezone=True), nullable=True)
    time_created = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    time_updated = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
