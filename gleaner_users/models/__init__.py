"""SQLAlchemy ORM models."""

from gleaner_users.models.acl import AclGrant, AclRole, AclUserRole
from gleaner_users.models.application import Application
from gleaner_users.models.base import Base
from gleaner_users.models.token import LoginAttempt, RevokedToken
from gleaner_users.models.user import User

__all__ = [
    "AclGrant",
    "AclRole",
    "AclUserRole",
    "Application",
    "Base",
    "LoginAttempt",
    "RevokedToken",
    "User",
]
