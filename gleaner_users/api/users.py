"""User endpoints: profile, deletion, role assignment and permission checks."""

from typing import Annotated

from fastapi import APIRouter, Body, Query

from gleaner_users.acl import normalize_resource
from gleaner_users.api.deps import Acl, AuthorizedUser, DbSession, SelfOrAuthorizedUser
from gleaner_users.schemas.auth import MessageResponse
from gleaner_users.schemas.users import Page, PasswordChange, UserOut, UserUpdate
from gleaner_users.services import users as users_service
from gleaner_users.services.paging import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()


@router.get("", response_model=Page)
def list_users(
    _user: AuthorizedUser,
    db: DbSession,
    acl: Acl,
    fields: Annotated[str | None, Query(description="Fields to return, separated by spaces")] = None,
    sort: Annotated[str, Query(description="Sort field; prefix with '-' for descending")] = "id",
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    page: Annotated[int, Query(ge=1)] = 1,
) -> Page:
    """Paged list of users with their roles."""
    return users_service.list_users(db, acl, fields=fields, sort=sort, limit=limit, page=page)


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, _user: SelfOrAuthorizedUser, db: DbSession) -> UserOut:
    return users_service.user_to_out(users_service.get_user(db, user_id))


@router.put("/{user_id}", response_model=UserOut)
def put_user(user_id: int, body: UserUpdate, _user: SelfOrAuthorizedUser, db: DbSession) -> UserOut:
    """Change the user's name; empty or missing parts are left as they are."""
    user = users_service.update_user_name(
        db, user_id, first=body.name.first, middle=body.name.middle, last=body.name.last
    )
    return users_service.user_to_out(user)


@router.put("/{user_id}/password", response_model=MessageResponse)
def put_user_password(
    user_id: int, body: PasswordChange, _user: SelfOrAuthorizedUser, db: DbSession
) -> MessageResponse:
    """Change the password; the current one must be given. A wrong one is 401."""
    users_service.change_password(db, user_id, body.password, body.new_password)
    return MessageResponse()


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, _user: SelfOrAuthorizedUser, db: DbSession, acl: Acl) -> MessageResponse:
    """Remove the account and all its role assignments."""
    users_service.delete_user(db, acl, user_id)
    return MessageResponse()


@router.get("/{user_id}/roles", response_model=list[str])
def get_user_roles(user_id: int, _user: SelfOrAuthorizedUser, db: DbSession, acl: Acl) -> list[str]:
    return users_service.get_user_roles(db, acl, user_id)


@router.post("/{user_id}/roles", response_model=MessageResponse)
def post_user_roles(
    user_id: int,
    roles: Annotated[list[str], Body(description="Names of existing roles to add")],
    _user: AuthorizedUser,
    db: DbSession,
    acl: Acl,
) -> MessageResponse:
    """Add roles to the user. Fails without changes if any role does not exist."""
    users_service.add_user_roles(db, acl, user_id, roles)
    return MessageResponse()


@router.delete("/{user_id}/roles/{role_name}", response_model=MessageResponse)
def delete_user_role(
    user_id: int, role_name: str, current_user: AuthorizedUser, db: DbSession, acl: Acl
) -> MessageResponse:
    """Remove one role. Removing 'admin' from yourself is forbidden."""
    users_service.remove_user_role(db, acl, user_id, role_name, caller_id=current_user.id)
    return MessageResponse()


@router.get("/{user_id}/{resource:path}/{permission}", response_model=bool)
def get_user_permission(
    user_id: int, resource: str, permission: str, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> bool:
    """True if the user has the permission on the resource, otherwise false."""
    return users_service.user_is_allowed(db, acl, user_id, normalize_resource(resource), permission)
