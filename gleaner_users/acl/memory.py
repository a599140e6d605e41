"""In-process ACL store. State lives for the lifetime of the process."""

import threading
from collections.abc import Iterable

from gleaner_users.acl.base import AclStore, as_list, grants_permission


class MemoryAclStore(AclStore):
    """Dict-backed AclStore guarded by a lock; suitable for local runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        # role -> resource -> permissions
        self._grants: dict[str, dict[str, set[str]]] = {}
        # username -> roles
        self._user_roles: dict[str, set[str]] = {}

    def allow(self, roles, resources, permissions) -> None:
        resources = as_list(resources)
        permissions = as_list(permissions)
        with self._lock:
            for role in as_list(roles):
                role_grants = self._grants.setdefault(role, {})
                for resource in resources:
                    role_grants.setdefault(resource, set()).update(permissions)

    def remove_allow(self, role, resources, permissions=None) -> None:
        with self._lock:
            role_grants = self._grants.get(role)
            if role_grants is None:
                return
            for resource in as_list(resources):
                if resource not in role_grants:
                    continue
                if permissions is None:
                    del role_grants[resource]
                    continue
                role_grants[resource].difference_update(as_list(permissions))
                if not role_grants[resource]:
                    del role_grants[resource]

    def remove_role(self, role: str) -> None:
        with self._lock:
            self._grants.pop(role, None)
            for roles in self._user_roles.values():
                roles.discard(role)

    def exists_role(self, role: str) -> bool:
        with self._lock:
            return role in self._grants

    def list_roles(self) -> list[str]:
        with self._lock:
            return sorted(self._grants)

    def what_resources(self, role: str) -> dict[str, list[str]]:
        with self._lock:
            return {
                resource: sorted(perms)
                for resource, perms in sorted(self._grants.get(role, {}).items())
            }

    def add_user_roles(self, username: str, roles: str | Iterable[str]) -> None:
        roles = as_list(roles)
        with self._lock:
            for role in roles:
                self._grants.setdefault(role, {})
            self._user_roles.setdefault(username, set()).update(roles)

    def remove_user_roles(self, username: str, roles: str | Iterable[str]) -> None:
        with self._lock:
            current = self._user_roles.get(username)
            if current is None:
                return
            current.difference_update(as_list(roles))
            if not current:
                del self._user_roles[username]

    def user_roles(self, username: str) -> list[str]:
        with self._lock:
            return sorted(self._user_roles.get(username, ()))

    def role_users(self, role: str) -> list[str]:
        with self._lock:
            return sorted(u for u, roles in self._user_roles.items() if role in roles)

    def is_allowed(self, username: str, resource: str, permission: str) -> bool:
        with self._lock:
            grants = [
                (pattern, perm)
                for role in self._user_roles.get(username, ())
                for pattern, perms in self._grants.get(role, {}).items()
                for perm in perms
            ]
        return grants_permission(grants, resource, permission)
