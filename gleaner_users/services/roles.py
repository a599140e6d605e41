"""Role management: roles, the resources they cover and the permissions on each."""

import logging

from sqlalchemy.orm import Session

from gleaner_users.acl import ADMIN_ROLE, AclStore, normalize_resource
from gleaner_users.core.errors import ForbiddenError, NotFoundError
from gleaner_users.schemas.roles import Allow, RoleGrant
from gleaner_users.services.applications import install_role_grants, remove_autorole

logger = logging.getLogger(__name__)


def _require_role(acl: AclStore, role: str) -> None:
    if not acl.exists_role(role):
        raise NotFoundError(f"The role '{role}' does not exist.")


def _require_resource(acl: AclStore, role: str, resource: str) -> tuple[str, list[str]]:
    """Normalized resource name and its permissions; NotFoundError if the role lacks it."""
    _require_role(acl, role)
    resource = normalize_resource(resource)
    resources = acl.what_resources(role)
    if resource not in resources:
        raise NotFoundError(f"The role '{role}' has no resource '{resource}'.")
    return resource, resources[resource]


def _commit(db: Session) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


def list_roles(acl: AclStore) -> list[str]:
    return acl.list_roles()


def create_roles(db: Session, acl: AclStore, grant: RoleGrant) -> None:
    """Create the roles in grant (or extend them when they already exist)."""
    install_role_grants(acl, [grant])
    _commit(db)
    logger.info("Granted %s to roles %s", [a.model_dump() for a in grant.allows], grant.roles)


def get_role(acl: AclStore, role: str) -> dict[str, list[str]]:
    _require_role(acl, role)
    return acl.what_resources(role)


def delete_role(db: Session, acl: AclStore, role: str) -> None:
    """Delete a role everywhere: its grants, its holders and application auto-roles."""
    if role == ADMIN_ROLE:
        raise ForbiddenError("The 'admin' role cannot be removed.")
    _require_role(acl, role)
    holders = acl.role_users(role)
    acl.remove_role(role)
    remove_autorole(db, role)
    _commit(db)
    logger.info("Deleted role %s (removed from %d users)", role, len(holders))


def get_role_resources(acl: AclStore, role: str) -> list[str]:
    return list(get_role(acl, role))


def add_role_resources(db: Session, acl: AclStore, role: str, allow: Allow) -> dict[str, list[str]]:
    _require_role(acl, role)
    acl.allow(role, allow.resources, allow.permissions)
    _commit(db)
    return acl.what_resources(role)


def remove_role_resource(db: Session, acl: AclStore, role: str, resource: str) -> dict[str, list[str]]:
    resource, _ = _require_resource(acl, role, resource)
    acl.remove_allow(role, resource)
    _commit(db)
    return acl.what_resources(role)


def get_resource_permissions(acl: AclStore, role: str, resource: str) -> list[str]:
    return _require_resource(acl, role, resource)[1]


def add_resource_permissions(
    db: Session, acl: AclStore, role: str, resource: str, permissions: list[str]
) -> list[str]:
    resource, _ = _require_resource(acl, role, resource)
    acl.allow(role, resource, permissions)
    _commit(db)
    return acl.what_resources(role).get(resource, [])


def remove_resource_permission(
    db: Session, acl: AclStore, role: str, resource: str, permission: str
) -> list[str]:
    """Revoke one permission; returns what remains on the resource."""
    resource, _ = _require_resource(acl, role, resource)
    acl.remove_allow(role, resource, permission)
    _commit(db)
    return acl.what_resources(role).get(resource, [])
