"""Application registry endpoints (admin)."""

from typing import Annotated

from fastapi import APIRouter, Query

from gleaner_users.api.deps import Acl, AuthorizedUser, DbSession
from gleaner_users.schemas.applications import ApplicationCreate, ApplicationOut, ApplicationUpdate
from gleaner_users.schemas.auth import MessageResponse
from gleaner_users.schemas.users import Page
from gleaner_users.services import applications as applications_service
from gleaner_users.services.paging import DEFAULT_LIMIT, MAX_LIMIT

router = APIRouter()


@router.get("", response_model=Page)
def list_applications(
    _user: AuthorizedUser,
    db: DbSession,
    limit: Annotated[int, Query(ge=1, le=MAX_LIMIT)] = DEFAULT_LIMIT,
    page: Annotated[int, Query(ge=1)] = 1,
) -> Page:
    return applications_service.list_applications(db, limit=limit, page=page)


@router.post("", response_model=ApplicationOut)
def post_application(
    body: ApplicationCreate, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> ApplicationOut:
    """
    Register an application and install its roles into the ACL.

    Registering a name that already exists merges the new roles, anonymous
    routes and auto-roles into it.
    """
    application = applications_service.register_application(db, acl, body)
    return ApplicationOut.model_validate(application)


@router.get("/{application_id}", response_model=ApplicationOut)
def get_application(application_id: int, _user: AuthorizedUser, db: DbSession) -> ApplicationOut:
    return ApplicationOut.model_validate(applications_service.get_application(db, application_id))


@router.put("/{application_id}", response_model=ApplicationOut)
def put_application(
    application_id: int, body: ApplicationUpdate, _user: AuthorizedUser, db: DbSession, acl: Acl
) -> ApplicationOut:
    application = applications_service.update_application(db, acl, application_id, body)
    return ApplicationOut.model_validate(application)


@router.delete("/{application_id}", response_model=MessageResponse)
def delete_application(application_id: int, _user: AuthorizedUser, db: DbSession) -> MessageResponse:
    applications_service.delete_application(db, application_id)
    return MessageResponse()
