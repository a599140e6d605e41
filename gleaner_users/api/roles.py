"""Role endpoints: roles, their resources and the permissions on each resource.

Resource names are path-like (e.g. /games/:gameId) and may contain slashes, so
they are captured with the path converter; percent-encoded slashes also work.
"""

from fastapi import APIRouter

from gleaner_users.api.deps import Acl, AuthorizedUser, DbSession
from gleaner_users.schemas.auth import MessageResponse
from gleaner_users.schemas.roles import Allow, PermissionsRequest, RoleGrant
from gleaner_users.services import roles as roles_service

router = APIRouter()


@router.get("", response_model=list[str])
def list_roles(_user: AuthorizedUser, acl: Acl) -> list[str]:
    return roles_service.list_roles(acl)


@router.post("", response_model=MessageResponse)
def post_roles(body: RoleGrant, _user: AuthorizedUser, db: DbSession, acl: Acl) -> MessageResponse:
    """Create roles with their allows, or extend existing ones."""
    roles_service.create_roles(db, acl, body)
    return MessageResponse()


@router.get("/{role}", response_model=dict[str, list[str]])
def get_role(role: str, _user: AuthorizedUser, acl: Acl) -> dict[str, list[str]]:
    """Map of resource to permissions granted to the role."""
    return roles_service.get_role(acl, role)


@router.delete("/{role}", response_model=MessageResponse)
def delete_role(role: str, _user: AuthorizedUser, db: DbSession, acl: Acl) -> MessageResponse:
    """Delete the role and remove it from every user holding it."""
    roles_service.delete_role(db, acl, role)
    return MessageResponse()


@router.get("/{role}/resources", response_model=list[str])
def get_role_resources(role: str, _user: AuthorizedUser, acl: Acl) -> list[str]:
    return roles_service.get_role_resources(acl, role)


@router.post("/{role}/resources", response_model=dict[str, list[str]])
def post_role_resources(
    role: str, body: Allow, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> dict[str, list[str]]:
    return roles_service.add_role_resources(db, acl, role, body)


# Permission routes come before DELETE /{role}/resources/{resource:path},
# which would otherwise swallow '.../permissions/...'.
@router.get("/{role}/resources/{resource:path}/permissions", response_model=list[str])
def get_resource_permissions(role: str, resource: str, _user: AuthorizedUser, acl: Acl) -> list[str]:
    return roles_service.get_resource_permissions(acl, role, resource)


@router.post("/{role}/resources/{resource:path}/permissions", response_model=list[str])
def post_resource_permissions(
    role: str,
    resource: str,
    body: PermissionsRequest,
    _user: AuthorizedUser,
    db: DbSession,
    acl: Acl,
) -> list[str]:
    return roles_service.add_resource_permissions(db, acl, role, resource, body.permissions)


@router.delete(
    "/{role}/resources/{resource:path}/permissions/{permission}", response_model=list[str]
)
def delete_resource_permission(
    role: str, resource: str, permission: str, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> list[str]:
    """Revoke one permission and return the permissions left on the resource."""
    return roles_service.remove_resource_permission(db, acl, role, resource, permission)


@router.delete("/{role}/resources/{resource:path}", response_model=dict[str, list[str]])
def delete_role_resource(
    role: str, resource: str, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> dict[str, list[str]]:
    return roles_service.remove_role_resource(db, acl, role, resource)
