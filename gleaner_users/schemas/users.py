"""Schemas for user profiles, paging and role assignment."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

USER_FIELDS = ("id", "username", "email", "time_created", "verification", "name", "roles")
SORTABLE_FIELDS = ("id", "username", "email", "time_created")


class UserName(BaseModel):
    first: str = ""
    middle: str = ""
    last: str = ""


class Verification(BaseModel):
    complete: bool = False


class UserOut(BaseModel):
    """Public view of an account (never includes password or reset hashes)."""

    id: int
    username: str
    email: str
    time_created: datetime | None = None
    verification: Verification = Field(default_factory=Verification)
    name: UserName = Field(default_factory=UserName)
    roles: list[str] | None = None


class UserNameUpdate(BaseModel):
    first: str | None = Field(default=None, max_length=255)
    middle: str | None = Field(default=None, max_length=255)
    last: str | None = Field(default=None, max_length=255)


class UserUpdate(BaseModel):
    """PUT /users/{id}: only non-empty name parts are changed."""

    name: UserNameUpdate = Field(default_factory=UserNameUpdate)


class PageInfo(BaseModel):
    current: int
    prev: int
    has_prev: bool
    next: int
    has_next: bool
    total: int


class ItemsInfo(BaseModel):
    limit: int
    begin: int
    end: int
    total: int


class Page(BaseModel):
    """Paged listing; data items hold only the requested fields."""

    data: list[dict[str, Any]]
    pages: PageInfo
    items: ItemsInfo


class PasswordChange(BaseModel):
    """PUT /users/{id}/password: the current password and the new one."""

    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128, alias="newPassword")
