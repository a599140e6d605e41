"""Schemas for the application registry."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from gleaner_users.schemas.roles import RoleGrant


def _clean_prefix(v: str) -> str:
    v = v.strip().strip("/")
    if not v or "/" in v:
        raise ValueError("prefix must be a single non-empty path segment")
    return v


class ApplicationCreate(BaseModel):
    """Registration descriptor. Registering an existing name merges into it."""

    name: str = Field(..., min_length=1, max_length=255)
    prefix: str = Field(..., min_length=1, max_length=255)
    host: str = Field(default="", max_length=2048)
    roles: list[RoleGrant] = Field(default_factory=list)
    anonymous: list[str] = Field(default_factory=list)
    autoroles: list[str] = Field(default_factory=list)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        return _clean_prefix(v)


class ApplicationUpdate(BaseModel):
    """PUT /applications/{id}: scalar fields replace, lists merge."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    prefix: str | None = Field(default=None, min_length=1, max_length=255)
    host: str | None = Field(default=None, max_length=2048)
    anonymous: list[str] = Field(default_factory=list)
    autoroles: list[str] = Field(default_factory=list)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str | None) -> str | None:
        return None if v is None else _clean_prefix(v)


class ApplicationOut(BaseModel):
    id: int
    name: str
    prefix: str
    host: str
    anonymous: list[str]
    autoroles: list[str]
    time_created: datetime | None = None

    class Config:
        from_attributes = True
