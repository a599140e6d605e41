"""Pydantic request/response schemas."""

from gleaner_users.schemas.applications import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationUpdate,
)
from gleaner_users.schemas.auth import (
    AuthorizeResponse,
    CurrentUser,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
)
from gleaner_users.schemas.health import HealthResponse
from gleaner_users.schemas.roles import Allow, PermissionsRequest, RoleGrant
from gleaner_users.schemas.signup import BulkImportResponse, ImportRowError
from gleaner_users.schemas.users import Page, PasswordChange, UserOut, UserUpdate

__all__ = [
    "Allow",
    "ApplicationCreate",
    "ApplicationOut",
    "ApplicationUpdate",
    "AuthorizeResponse",
    "BulkImportResponse",
    "CurrentUser",
    "ForgotPasswordRequest",
    "HealthResponse",
    "ImportRowError",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "Page",
    "PasswordChange",
    "PermissionsRequest",
    "ResetPasswordRequest",
    "RoleGrant",
    "SignupRequest",
    "UserOut",
    "UserUpdate",
]
