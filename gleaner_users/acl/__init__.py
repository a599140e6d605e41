"""Role-based access control store and the dependency that selects its backend."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from gleaner_users.acl.base import ALL_PERMISSIONS, AclStore, normalize_resource, resource_matches
from gleaner_users.acl.memory import MemoryAclStore
from gleaner_users.acl.sql import SqlAclStore
from gleaner_users.core.config import get_settings
from gleaner_users.core.database import get_db

ADMIN_ROLE = "admin"

_memory_store = MemoryAclStore()


def get_acl(db: Annotated[Session, Depends(get_db)]) -> AclStore:
    """Dependency: the configured ACL backend bound to this request."""
    if get_settings().ACL_BACKEND == "memory":
        return _memory_store
    return SqlAclStore(db)


__all__ = [
    "ADMIN_ROLE",
    "ALL_PERMISSIONS",
    "AclStore",
    "MemoryAclStore",
    "SqlAclStore",
    "get_acl",
    "normalize_resource",
    "resource_matches",
]
