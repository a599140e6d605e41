"""Relational ACL store on the request's SQLAlchemy session.

Mutations are flushed, not committed: the caller owns the transaction so that
an application registration or a user deletion lands as one unit.
"""

import functools
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gleaner_users.acl.base import AclStore, as_list, grants_permission
from gleaner_users.core.errors import AclStoreError
from gleaner_users.models.acl import AclGrant, AclRole, AclUserRole


def _store_errors(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            raise AclStoreError(f"ACL store unavailable: {type(e).__name__}") from e

    return wrapper


class SqlAclStore(AclStore):
    """AclStore over the acl_roles / acl_grants / acl_user_roles tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _role(self, name: str) -> AclRole | None:
        return self.session.execute(
            select(AclRole).where(AclRole.name == name)
        ).scalar_one_or_none()

    def _get_or_create_role(self, name: str) -> AclRole:
        role = self._role(name)
        if role is None:
            role = AclRole(name=name)
            self.session.add(role)
            self.session.flush()
        return role

    @_store_errors
    def allow(self, roles, resources, permissions) -> None:
        resources = as_list(resources)
        permissions = as_list(permissions)
        for name in as_list(roles):
            role = self._get_or_create_role(name)
            existing = {(g.resource, g.permission) for g in role.grants}
            for resource in resources:
                for permission in permissions:
                    if (resource, permission) not in existing:
                        role.grants.append(AclGrant(resource=resource, permission=permission))
                        existing.add((resource, permission))
        self.session.flush()

    @_store_errors
    def remove_allow(self, role, resources, permissions=None) -> None:
        acl_role = self._role(role)
        if acl_role is None:
            return
        resources = set(as_list(resources))
        permissions = None if permissions is None else set(as_list(permissions))
        for grant in list(acl_role.grants):
            if grant.resource not in resources:
                continue
            if permissions is None or grant.permission in permissions:
                acl_role.grants.remove(grant)
        self.session.flush()

    @_store_errors
    def remove_role(self, role: str) -> None:
        acl_role = self._role(role)
        if acl_role is not None:
            self.session.delete(acl_role)
            self.session.flush()

    @_store_errors
    def exists_role(self, role: str) -> bool:
        return self._role(role) is not None

    @_store_errors
    def list_roles(self) -> list[str]:
        return list(self.session.execute(select(AclRole.name).order_by(AclRole.name)).scalars())

    @_store_errors
    def what_resources(self, role: str) -> dict[str, list[str]]:
        acl_role = self._role(role)
        if acl_role is None:
            return {}
        resources: dict[str, list[str]] = {}
        for grant in sorted(acl_role.grants, key=lambda g: (g.resource, g.permission)):
            resources.setdefault(grant.resource, []).append(grant.permission)
        return resources

    @_store_errors
    def add_user_roles(self, username: str, roles: str | Iterable[str]) -> None:
        current = set(self.user_roles(username))
        for name in as_list(roles):
            if name in current:
                continue
            role = self._get_or_create_role(name)
            self.session.add(AclUserRole(username=username, role=role))
            current.add(name)
        self.session.flush()

    @_store_errors
    def remove_user_roles(self, username: str, roles: str | Iterable[str]) -> None:
        names = as_list(roles)
        if not names:
            return
        assignments = self.session.execute(
            select(AclUserRole)
            .join(AclRole)
            .where(AclUserRole.username == username, AclRole.name.in_(names))
        ).scalars().all()
        for assignment in assignments:
            self.session.delete(assignment)
        self.session.flush()

    @_store_errors
    def user_roles(self, username: str) -> list[str]:
        return list(
            self.session.execute(
                select(AclRole.name)
                .join(AclUserRole, AclUserRole.role_id == AclRole.id)
                .where(AclUserRole.username == username)
                .order_by(AclRole.name)
            ).scalars()
        )

    @_store_errors
    def role_users(self, role: str) -> list[str]:
        return list(
            self.session.execute(
                select(AclUserRole.username)
                .join(AclRole, AclUserRole.role_id == AclRole.id)
                .where(AclRole.name == role)
                .order_by(AclUserRole.username)
            ).scalars()
        )

    @_store_errors
    def is_allowed(self, username: str, resource: str, permission: str) -> bool:
        rows = self.session.execute(
            select(AclGrant.resource, AclGrant.permission)
            .join(AclUserRole, AclUserRole.role_id == AclGrant.role_id)
            .where(
                AclUserRole.username == username,
                AclGrant.permission.in_([permission, "*"]),
            )
        ).all()
        return grants_permission(((r.resource, r.permission) for r in rows), resource, permission)
