"""Application registry: registering an application seeds the ACL store with its roles."""

import logging

from sqlalchemy.orm import Session

from gleaner_users.acl import AclStore
from gleaner_users.core.errors import ConflictError, NotFoundError, ValidationError
from gleaner_users.models import Application
from gleaner_users.schemas.applications import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationUpdate,
)
from gleaner_users.schemas.roles import RoleGrant
from gleaner_users.schemas.users import Page
from gleaner_users.services.authorization import is_anonymous_route
from gleaner_users.services.paging import paginate

logger = logging.getLogger(__name__)

APPLICATION_NOT_FOUND = "No application with the given id exists."


def _merge(current: list[str] | None, extra: list[str]) -> list[str]:
    merged = list(current or [])
    for item in extra:
        item = item.strip()
        if item and item not in merged:
            merged.append(item)
    return merged


def install_role_grants(acl: AclStore, grants: list[RoleGrant]) -> None:
    """Create each role if absent and extend its grants; existing grants are kept."""
    for grant in grants:
        if not grant.allows:
            # A role with no allows is still created so it can be assigned.
            acl.allow(grant.roles, [], [])
        for allow in grant.allows:
            acl.allow(grant.roles, allow.resources, allow.permissions)


def get_application(db: Session, application_id: int) -> Application:
    application = db.get(Application, application_id)
    if application is None:
        raise NotFoundError(APPLICATION_NOT_FOUND)
    return application


def get_application_by_prefix(db: Session, prefix: str) -> Application:
    application = db.query(Application).filter(Application.prefix == prefix).first()
    if application is None:
        raise NotFoundError(f"No application registered with prefix '{prefix}'.")
    return application


def _ensure_prefix_free(db: Session, prefix: str, owner_id: int | None) -> None:
    other = db.query(Application).filter(Application.prefix == prefix).first()
    if other is not None and other.id != owner_id:
        raise ConflictError(f"The prefix '{prefix}' is already used by application '{other.name}'.")


def _ensure_name_free(db: Session, name: str, owner_id: int | None) -> None:
    other = db.query(Application).filter(Application.name == name).first()
    if other is not None and other.id != owner_id:
        raise ConflictError(f"An application named '{name}' already exists.")


def _ensure_roles_exist(acl: AclStore, roles: list[str], installing: frozenset[str] = frozenset()) -> None:
    missing = [role for role in roles if role not in installing and not acl.exists_role(role)]
    if missing:
        raise ValidationError(f"Auto-role(s) not found: {', '.join(missing)}")


def register_application(db: Session, acl: AclStore, body: ApplicationCreate) -> Application:
    """
    Register an application, or merge into the one with the same name.

    Role grants are unioned into the ACL store, anonymous routes and auto-roles
    are merged, so registering the same descriptor twice changes nothing.
    """
    name = body.name.strip()
    application = db.query(Application).filter(Application.name == name).first()
    _ensure_prefix_free(db, body.prefix, application.id if application else None)
    # Validate everything before touching the ACL store; the memory backend has no rollback.
    _ensure_roles_exist(acl, body.autoroles, frozenset(r for g in body.roles for r in g.roles))
    try:
        install_role_grants(acl, body.roles)
        if application is None:
            application = Application(
                name=name,
                prefix=body.prefix,
                host=body.host.strip(),
                anonymous=_merge([], body.anonymous),
                autoroles=_merge([], body.autoroles),
            )
            db.add(application)
            created = True
        else:
            application.prefix = body.prefix
            if body.host.strip():
                application.host = body.host.strip()
            application.anonymous = _merge(application.anonymous, body.anonymous)
            application.autoroles = _merge(application.autoroles, body.autoroles)
            created = False
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(application)
    logger.info(
        "%s application name=%s prefix=%s roles=%s",
        "Registered" if created else "Re-registered",
        application.name,
        application.prefix,
        [r for g in body.roles for r in g.roles],
    )
    return application


def update_application(
    db: Session, acl: AclStore, application_id: int, body: ApplicationUpdate
) -> Application:
    application = get_application(db, application_id)
    if body.name is not None:
        _ensure_name_free(db, body.name.strip(), application.id)
        application.name = body.name.strip()
    if body.prefix is not None:
        _ensure_prefix_free(db, body.prefix, application.id)
        application.prefix = body.prefix
    if body.host is not None:
        application.host = body.host.strip()
    _ensure_roles_exist(acl, body.autoroles)
    application.anonymous = _merge(application.anonymous, body.anonymous)
    application.autoroles = _merge(application.autoroles, body.autoroles)
    db.commit()
    db.refresh(application)
    logger.info("Updated application id=%s name=%s", application.id, application.name)
    return application


def delete_application(db: Session, application_id: int) -> None:
    """Remove the registry entry. Roles it installed stay in the ACL store."""
    application = get_application(db, application_id)
    name = application.name
    db.delete(application)
    db.commit()
    logger.info("Deleted application id=%s name=%s", application_id, name)


def list_applications(db: Session, limit: int = 20, page: int = 1) -> Page:
    query = db.query(Application).order_by(Application.id.asc())
    rows, pages, items = paginate(query, limit, page)
    data = [ApplicationOut.model_validate(row).model_dump(mode="json") for row in rows]
    return Page(data=data, pages=pages, items=items)


def resolve_autoroles(db: Session, acl: AclStore, prefix: str | None = None) -> list[str]:
    """
    Roles a new account receives: the auto-roles of the application with
    prefix, or of every registered application when prefix is None.
    Roles deleted since registration are skipped.
    """
    if prefix:
        applications = [get_application_by_prefix(db, prefix)]
    else:
        applications = db.query(Application).order_by(Application.id.asc()).all()
    roles: list[str] = []
    for application in applications:
        roles = _merge(roles, application.autoroles or [])
    existing = [role for role in roles if acl.exists_role(role)]
    if len(existing) != len(roles):
        logger.warning(
            "Skipping missing auto-roles: %s", sorted(set(roles) - set(existing))
        )
    return existing


def remove_autorole(db: Session, role: str) -> None:
    """Drop a deleted role from every application's auto-roles (caller commits)."""
    for application in db.query(Application).all():
        if role in (application.autoroles or []):
            application.autoroles = [r for r in application.autoroles if r != role]


def is_anonymous(application: Application, path: str) -> bool:
    return is_anonymous_route(application.anonymous or [], path)
