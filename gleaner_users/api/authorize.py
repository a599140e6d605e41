"""Gateway authorization for registered applications.

A reverse proxy calls this (e.g. nginx auth_request) before forwarding
`/{prefix}/{path}` to the application's host; 200 lets the request through.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Response
from fastapi.security import HTTPAuthorizationCredentials

from gleaner_users.acl import normalize_resource
from gleaner_users.api.deps import Acl, DbSession, resolve_user, security
from gleaner_users.core.errors import UnauthorizedError
from gleaner_users.schemas.auth import AuthorizeResponse
from gleaner_users.services.applications import get_application_by_prefix, is_anonymous
from gleaner_users.services.authorization import require_allowed

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{prefix}/{path:path}", response_model=AuthorizeResponse)
def authorize(
    prefix: str,
    path: str,
    response: Response,
    db: DbSession,
    acl: Acl,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    x_original_method: Annotated[str, Header()] = "GET",
) -> AuthorizeResponse:
    """
    Decide whether `X-Original-Method /{path}` may reach application `prefix`.

    Anonymous routes pass without a token. Otherwise the caller's roles must
    grant the lower-cased method on `/{path}`; the user is echoed back in
    X-User-Id and X-Username for the upstream.
    """
    application = get_application_by_prefix(db, prefix)
    resource = normalize_resource(path)
    permission = x_original_method.strip().lower()
    if is_anonymous(application, resource):
        return AuthorizeResponse(
            application=application.name, resource=resource, permission=permission, anonymous=True
        )
    if credentials is None:
        raise UnauthorizedError("Not authenticated")
    user = resolve_user(db, credentials.credentials)
    require_allowed(acl, user.username, resource, permission)
    response.headers["X-User-Id"] = str(user.id)
    response.headers["X-Username"] = user.username
    return AuthorizeResponse(
        application=application.name,
        resource=resource,
        permission=permission,
        anonymous=False,
        username=user.username,
    )
