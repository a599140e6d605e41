"""Login, logout, signup (single and CSV) and password reset endpoints."""

from typing import Annotated

from fastapi import APIRouter, Form, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from gleaner_users.api.deps import Acl, AuthorizedUser, CurrentUserDep, DbSession
from gleaner_users.core.config import get_settings
from gleaner_users.core.errors import UsersApiError, ValidationError
from gleaner_users.schemas.auth import (
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
)
from gleaner_users.schemas.signup import BulkImportResponse
from gleaner_users.schemas.users import UserOut
from gleaner_users.services import accounts
from gleaner_users.services.bulk_import import import_users_csv
from gleaner_users.services.users import user_to_out

router = APIRouter()

ALLOWED_CSV_CONTENT_TYPES = frozenset(
    {"text/csv", "application/csv", "application/vnd.ms-excel", "text/plain", "application/octet-stream"}
)


class PayloadTooLargeError(UsersApiError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, request: Request, db: DbSession, acl: Acl) -> LoginResponse:
    """
    Authenticate with username (or email) and password; returns the user and a JWT.
    Include the token in the Authorization header as: Bearer <token>
    """
    ip = request.client.host if request.client else ""
    user = accounts.login(db, acl, body.identifier, body.password, ip, get_settings())
    return LoginResponse(user=user)


@router.delete("/logout", response_model=MessageResponse)
def logout(current_user: CurrentUserDep, db: DbSession) -> MessageResponse:
    """Revoke the bearer token used for this request."""
    accounts.logout(db, current_user.jti, current_user.exp)
    return MessageResponse()


@router.post("/signup", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def signup(body: SignupRequest, db: DbSession, acl: Acl) -> UserOut:
    """Create an account. It receives the auto-roles of the registered applications."""
    user = accounts.signup(db, acl, body)
    return user_to_out(user, acl.user_roles(user.username))


@router.post("/signup/massive", response_model=BulkImportResponse)
async def signup_massive(
    csv: UploadFile,
    _user: AuthorizedUser,
    db: DbSession,
    acl: Acl,
    prefix: Annotated[str | None, Form()] = None,
) -> BulkImportResponse:
    """
    Create many accounts from a CSV file sent as multipart field `csv`.

    The header row must name at least `username` and `email`; `password`,
    `first`, `middle` and `last` are optional. Rows without a password get a
    generated one sent by mail. Failing rows are listed in `errors` and do not
    affect the others.
    """
    settings = get_settings()
    content_type = (csv.content_type or "").split(";")[0].strip().lower()
    if content_type and content_type not in ALLOWED_CSV_CONTENT_TYPES:
        raise ValidationError("The uploaded file must be a CSV file.")
    content = await csv.read(settings.MAX_CSV_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_CSV_UPLOAD_BYTES:
        raise PayloadTooLargeError(
            f"File size must not exceed {settings.MAX_CSV_UPLOAD_BYTES // 1024} KB."
        )
    # Hashing and mail delivery block; keep them off the event loop.
    return await run_in_threadpool(import_users_csv, db, acl, content, settings, prefix=prefix)


@router.post("/login/forgot", response_model=MessageResponse)
def forgot_password(body: ForgotPasswordRequest, db: DbSession) -> MessageResponse:
    """Mail a password reset link when the address belongs to an account."""
    accounts.request_password_reset(db, str(body.email), get_settings())
    return MessageResponse(message="If the email is registered, a reset link has been sent.")


@router.post("/login/reset/{token}", response_model=MessageResponse)
def reset_password(token: str, body: ResetPasswordRequest, db: DbSession) -> MessageResponse:
    """Set a new password using the token from the reset link."""
    accounts.reset_password(db, token, str(body.email), body.password)
    return MessageResponse()
