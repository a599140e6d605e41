"""Request dependencies: bearer authentication and the authorization gate."""

import logging
from typing import Annotated

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gleaner_users.acl import AclStore, get_acl
from gleaner_users.core.config import get_settings
from gleaner_users.core.database import get_db
from gleaner_users.core.errors import UnauthorizedError
from gleaner_users.core.security import decode_access_token
from gleaner_users.models import User
from gleaner_users.schemas.auth import CurrentUser
from gleaner_users.services.accounts import is_token_revoked
from gleaner_users.services.authorization import require_allowed, route_resource

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def resolve_user(db: Session, token: str) -> CurrentUser:
    """Validate a bearer token and load its user. Raises UnauthorizedError."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthorizedError("Invalid token payload")
    if is_token_revoked(db, payload["jti"]):
        raise UnauthorizedError("Token has been revoked")
    user = db.get(User, user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return CurrentUser(
        id=user.id,
        username=user.username,
        jti=payload["jti"],
        exp=int(payload["exp"]),
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid."""
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    return resolve_user(db, credentials.credentials)


def require_authorized(
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    acl: Annotated[AclStore, Depends(get_acl)],
) -> CurrentUser:
    """
    Dependency: the caller's roles must grant the lower-cased HTTP method on
    this route's resource pattern. Raises 403 otherwise.
    """
    route = request.scope["route"]
    resource = route_resource(route.path, get_settings().API_PREFIX)
    require_allowed(acl, current_user.username, resource, request.method)
    return current_user


def check_auth_and_exec(
    user_id: int,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    acl: Annotated[AclStore, Depends(get_acl)],
) -> CurrentUser:
    """Dependency: callers may always act on their own account; otherwise the gate decides."""
    if current_user.id == user_id:
        return current_user
    return require_authorized(request, current_user, acl)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
AuthorizedUser = Annotated[CurrentUser, Depends(require_authorized)]
SelfOrAuthorizedUser = Annotated[CurrentUser, Depends(check_auth_and_exec)]
DbSession = Annotated[Session, Depends(get_db)]
Acl = Annotated[AclStore, Depends(get_acl)]
