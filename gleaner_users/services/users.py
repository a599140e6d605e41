"""User accounts: creation, profile updates, deletion, listing and role assignment."""

import logging
from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gleaner_users.acl import ADMIN_ROLE, AclStore
from gleaner_users.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
)
from gleaner_users.core.security import hash_password, verify_password
from gleaner_users.models import User
from gleaner_users.schemas.users import (
    SORTABLE_FIELDS,
    USER_FIELDS,
    Page,
    UserName,
    UserOut,
    Verification,
)
from gleaner_users.services.paging import paginate, parse_fields, parse_sort

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "No account with the given user id exists."


def user_to_out(user: User, roles: list[str] | None = None) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        time_created=user.time_created,
        verification=Verification(complete=bool(user.verified)),
        name=UserName(
            first=user.name_first or "",
            middle=user.name_middle or "",
            last=user.name_last or "",
        ),
        roles=roles,
    )


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(USER_NOT_FOUND)
    return user


def find_user(db: Session, identifier: str) -> User | None:
    """Look up by username, or by email when identifier contains '@'."""
    if "@" in identifier:
        return db.query(User).filter(User.email == identifier.strip().lower()).first()
    return db.query(User).filter(User.username == identifier).first()


def ensure_available(db: Session, username: str, email: str) -> None:
    if db.query(User.id).filter(User.username == username).first() is not None:
        raise ConflictError("That username is already taken.")
    if db.query(User.id).filter(User.email == email.strip().lower()).first() is not None:
        raise ConflictError("That email is already registered.")


def create_user(
    db: Session,
    acl: AclStore,
    username: str,
    email: str,
    password: str,
    *,
    first: str = "",
    middle: str = "",
    last: str = "",
    roles: Iterable[str] = (),
) -> User:
    """Create and commit one account, then assign roles. Raises ConflictError on duplicates."""
    username = username.strip()
    roles = list(roles)
    ensure_available(db, username, email)
    user = User(
        username=username,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        name_first=first.strip(),
        name_middle=middle.strip(),
        name_last=last.strip(),
        verified=False,
    )
    db.add(user)
    try:
        db.flush()
        if roles:
            acl.add_user_roles(username, roles)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError("That username or email is already registered.") from e
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    logger.info("Created user id=%s username=%s roles=%s", user.id, username, roles)
    return user


def update_user_name(
    db: Session,
    user_id: int,
    first: str | None = None,
    middle: str | None = None,
    last: str | None = None,
) -> User:
    """Set the non-empty name parts and leave the others untouched."""
    user = get_user(db, user_id)
    if first:
        user.name_first = first.strip()
    if middle:
        user.name_middle = middle.strip()
    if last:
        user.name_last = last.strip()
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user_id: int, password: str, new_password: str) -> User:
    """Replace the password after checking the current one. Raises UnauthorizedError if it is wrong."""
    user = get_user(db, user_id)
    if not verify_password(password, user.password_hash):
        logger.warning("Password change rejected for user=%s: incorrect password", user.username)
        raise UnauthorizedError("Incorrect password.")
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed for user=%s", user.username)
    return user


def delete_user(db: Session, acl: AclStore, user_id: int) -> None:
    """Delete the account and every role assignment it held."""
    user = get_user(db, user_id)
    username = user.username
    db.delete(user)
    try:
        removed = acl.remove_user(username)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted user id=%s username=%s roles_removed=%s", user_id, username, removed)


def list_users(
    db: Session,
    acl: AclStore,
    fields: str | None = None,
    sort: str | None = None,
    limit: int = 20,
    page: int = 1,
) -> Page:
    selected = parse_fields(fields, USER_FIELDS)
    sort_field, descending = parse_sort(sort, SORTABLE_FIELDS)
    column = getattr(User, sort_field)
    if sort_field in ("username", "email"):
        column = func.lower(column)
    query = db.query(User).order_by(column.desc() if descending else column.asc(), User.id.asc())
    users, pages, items = paginate(query, limit, page)
    data = []
    for user in users:
        roles = acl.user_roles(user.username) if "roles" in selected else None
        out = user_to_out(user, roles).model_dump(mode="json")
        data.append({key: out[key] for key in selected})
    return Page(data=data, pages=pages, items=items)


def get_user_roles(db: Session, acl: AclStore, user_id: int) -> list[str]:
    user = get_user(db, user_id)
    return acl.user_roles(user.username)


def add_user_roles(db: Session, acl: AclStore, user_id: int, roles: list[str]) -> list[str]:
    """Assign roles; every role must exist, checked before anything is assigned."""
    user = get_user(db, user_id)
    names = [r.strip() for r in roles if r and r.strip()]
    missing = [name for name in names if not acl.exists_role(name)]
    if missing:
        raise NotFoundError(f"Role(s) not found: {', '.join(missing)}")
    try:
        acl.add_user_roles(user.username, names)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Added roles %s to user=%s", names, user.username)
    return acl.user_roles(user.username)


def remove_user_role(
    db: Session, acl: AclStore, user_id: int, role: str, caller_id: int
) -> None:
    """Remove one role. Nobody can remove the admin role from themself."""
    user = get_user(db, user_id)
    if role == ADMIN_ROLE and user.id == caller_id:
        raise ForbiddenError("You can't remove the 'admin' role from yourself.")
    try:
        acl.remove_user_roles(user.username, role)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Removed role %s from user=%s", role, user.username)


def user_is_allowed(
    db: Session, acl: AclStore, user_id: int, resource: str, permission: str
) -> bool:
    user = get_user(db, user_id)
    return acl.is_allowed(user.username, resource, permission)
