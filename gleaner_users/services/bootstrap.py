"""Admin bootstrap: install the admin role grants and, optionally, the first admin account."""

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from gleaner_users.acl import ADMIN_ROLE, AclStore
from gleaner_users.models import User
from gleaner_users.services.authorization import seed_admin_role
from gleaner_users.services.users import create_user, find_user

logger = logging.getLogger(__name__)


def ensure_admin(
    db: Session,
    acl: AclStore,
    resources: Iterable[str],
    username: str | None = None,
    email: str | None = None,
    password: str | None = None,
) -> User | None:
    """
    Grant the admin role '*' on every API resource (idempotent). When username
    is given, make sure that account exists and holds the admin role.
    """
    resources = seed_admin_role(acl, resources)
    db.commit()
    logger.info("Admin role covers %d resources", len(resources))
    if not username:
        return None
    user = find_user(db, username)
    if user is None:
        if not email or not password:
            raise ValueError("email and password are required to create the admin account")
        return create_user(db, acl, username, email, password, roles=[ADMIN_ROLE])
    if not acl.has_role(user.username, ADMIN_ROLE):
        acl.add_user_roles(user.username, ADMIN_ROLE)
        db.commit()
        logger.info("Granted admin role to existing user %s", user.username)
    return user
