"""Request/response schemas for login, logout, signup and password reset."""

from pydantic import BaseModel, EmailStr, Field, model_validator

from gleaner_users.schemas.users import UserOut


class LoginRequest(BaseModel):
    """Credentials for login; either username or email identifies the account."""

    username: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str = Field(..., min_length=1, max_length=128, description="Password")

    @model_validator(mode="after")
    def require_identifier(self) -> "LoginRequest":
        if not self.username and not self.email:
            raise ValueError("username or email is required")
        return self

    @property
    def identifier(self) -> str:
        return self.username or str(self.email)


class LoggedInUser(UserOut):
    """Authenticated user plus the bearer token to send on later requests."""

    token: str = Field(..., description="JWT access token")


class LoginResponse(BaseModel):
    user: LoggedInUser


class CurrentUser(BaseModel):
    """Caller identity resolved from the bearer token, injected per request."""

    id: int
    username: str
    jti: str
    exp: int


class SignupRequest(BaseModel):
    """New account. prefix selects the application whose auto-roles are assigned."""

    username: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    prefix: str | None = Field(default=None, max_length=255)
    first: str = Field(default="", max_length=255)
    middle: str = Field(default="", max_length=255)
    last: str = Field(default="", max_length=255)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)


class MessageResponse(BaseModel):
    message: str = "Success."


class AuthorizeResponse(BaseModel):
    """Gateway decision for one proxied request (only returned when allowed)."""

    allowed: bool = True
    application: str
    resource: str
    permission: str
    anonymous: bool
    username: str | None = None
