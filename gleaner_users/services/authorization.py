"""Authorization decisions on top of the ACL store.

Resources for this API's own endpoints are the route templates relative to the
API prefix with FastAPI's `{param}` written as `:param`, e.g.
`/users/:user_id/roles`; the permission is the lower-cased HTTP method.
"""

import logging
import re
from collections.abc import Iterable

from fastapi import FastAPI
from fastapi.routing import APIRoute

from gleaner_users.acl import ADMIN_ROLE, ALL_PERMISSIONS, AclStore, resource_matches
from gleaner_users.core.errors import ForbiddenError

logger = logging.getLogger(__name__)

_PATH_PARAM = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(?::[A-Za-z_]+)?\}")

# Reachable without a token; never part of the admin grant set.
PUBLIC_RESOURCES = frozenset(
    {
        "/",
        "/health",
        "/login",
        "/logout",
        "/login/forgot",
        "/login/reset/:token",
        "/signup",
        "/authorize/:prefix/:path",
    }
)


def route_resource(route_path: str, api_prefix: str) -> str:
    """'/api/users/{user_id}/roles' -> '/users/:user_id/roles'."""
    if api_prefix and route_path.startswith(api_prefix):
        route_path = route_path[len(api_prefix):] or "/"
    return _PATH_PARAM.sub(r":\1", route_path)


def api_resources(app: FastAPI, api_prefix: str) -> list[str]:
    """Every gated resource pattern this application serves."""
    resources = {
        route_resource(route.path, api_prefix)
        for route in app.routes
        if isinstance(route, APIRoute) and route.path.startswith(api_prefix)
    }
    return sorted(resources - PUBLIC_RESOURCES)


def is_allowed(acl: AclStore, username: str | None, resource: str, permission: str) -> bool:
    """
    True if some role of username grants permission (or '*') on resource.
    Anonymous callers (username None) are never allowed here; anonymous routes
    are decided before reaching the ACL.
    """
    if not username:
        return False
    allowed = acl.is_allowed(username, resource, permission.lower())
    if not allowed:
        logger.info(
            "Denied: user=%s resource=%s permission=%s", username, resource, permission
        )
    return allowed


def require_allowed(acl: AclStore, username: str, resource: str, permission: str) -> None:
    if not is_allowed(acl, username, resource, permission):
        raise ForbiddenError("You don't have permission to access this resource.")


def is_anonymous_route(patterns: Iterable[str], path: str) -> bool:
    return any(resource_matches(pattern, path) for pattern in patterns)


def seed_admin_role(acl: AclStore, resources: Iterable[str]) -> list[str]:
    """Grant the admin role every permission on the given resources."""
    resources = list(resources)
    acl.allow(ADMIN_ROLE, resources, ALL_PERMISSIONS)
    return resources
