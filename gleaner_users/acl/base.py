"""ACL capability interface and resource pattern matching shared by every backend."""

from abc import ABC, abstractmethod
from collections.abc import Iterable

ALL_PERMISSIONS = "*"


def as_list(value: str | Iterable[str]) -> list[str]:
    """Accept a single name or an iterable of names; drop blanks and duplicates, keep order."""
    items = [value] if isinstance(value, str) else list(value)
    seen: list[str] = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def normalize_resource(resource: str) -> str:
    """Resources always start with a single '/': 'games/42' -> '/games/42'."""
    return "/" + resource.strip().lstrip("/")


def resource_matches(pattern: str, resource: str) -> bool:
    """
    True when resource is the pattern itself or a concrete path for it.

    Segments starting with ':' are route parameters and match any single
    non-empty segment: '/games/:gameId' matches '/games/42' but not '/games'
    or '/games/42/sessions'.
    """
    if pattern == resource:
        return True
    pattern_parts = pattern.strip("/").split("/")
    resource_parts = resource.strip("/").split("/")
    if len(pattern_parts) != len(resource_parts):
        return False
    return all(
        p == r or (p.startswith(":") and len(p) > 1 and r != "")
        for p, r in zip(pattern_parts, resource_parts)
    )


def grants_permission(
    grants: Iterable[tuple[str, str]], resource: str, permission: str
) -> bool:
    """True if any (pattern, permission) grant covers resource with permission or '*'."""
    return any(
        perm in (permission, ALL_PERMISSIONS) and resource_matches(pattern, resource)
        for pattern, perm in grants
    )


class AclStore(ABC):
    """
    Roles, their resource/permission grants and user-role assignments.

    Implementations raise AclStoreError when the underlying storage fails.
    Mutations are visible to the caller immediately; durability follows the
    backend (the SQL store joins the caller's transaction).
    """

    @abstractmethod
    def allow(
        self,
        roles: str | Iterable[str],
        resources: str | Iterable[str],
        permissions: str | Iterable[str],
    ) -> None:
        """Grant permissions on resources to roles, creating roles that do not exist."""

    @abstractmethod
    def remove_allow(
        self,
        role: str,
        resources: str | Iterable[str],
        permissions: str | Iterable[str] | None = None,
    ) -> None:
        """Revoke permissions on resources from a role; all of them when permissions is None."""

    @abstractmethod
    def remove_role(self, role: str) -> None:
        """Delete a role, its grants and every user assignment of it."""

    @abstractmethod
    def exists_role(self, role: str) -> bool: ...

    @abstractmethod
    def list_roles(self) -> list[str]: ...

    @abstractmethod
    def what_resources(self, role: str) -> dict[str, list[str]]:
        """Map of resource pattern to granted permissions for one role."""

    @abstractmethod
    def add_user_roles(self, username: str, roles: str | Iterable[str]) -> None: ...

    @abstractmethod
    def remove_user_roles(self, username: str, roles: str | Iterable[str]) -> None: ...

    @abstractmethod
    def user_roles(self, username: str) -> list[str]: ...

    @abstractmethod
    def role_users(self, role: str) -> list[str]: ...

    @abstractmethod
    def is_allowed(self, username: str, resource: str, permission: str) -> bool:
        """True if some role of username grants permission (or '*') on a pattern matching resource."""

    def has_role(self, username: str, role: str) -> bool:
        return role in self.user_roles(username)

    def remove_user(self, username: str) -> list[str]:
        """Drop every role of username; return the roles that were removed."""
        roles = self.user_roles(username)
        if roles:
            self.remove_user_roles(username, roles)
        return roles
