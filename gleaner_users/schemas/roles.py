"""Schemas for roles and their resource/permission grants."""

from pydantic import BaseModel, Field, field_validator

from gleaner_users.acl.base import normalize_resource


def _split_names(value: object) -> object:
    # "get put" and ["get", "put"] are both accepted.
    if isinstance(value, str):
        return value.split()
    return value


class Allow(BaseModel):
    """Permissions granted on every listed resource pattern."""

    resources: list[str] = Field(..., min_length=1)
    permissions: list[str] = Field(..., min_length=1)

    @field_validator("resources", "permissions", mode="before")
    @classmethod
    def split_names(cls, v: object) -> object:
        return _split_names(v)

    @field_validator("resources", "permissions")
    @classmethod
    def non_blank(cls, v: list[str]) -> list[str]:
        names = [s.strip() for s in v if s and s.strip()]
        if not names:
            raise ValueError("at least one non-empty name is required")
        return names

    @field_validator("resources")
    @classmethod
    def leading_slash(cls, v: list[str]) -> list[str]:
        return [normalize_resource(r) for r in v]


class RoleGrant(BaseModel):
    """One or more roles receiving the same allows."""

    roles: list[str] = Field(..., min_length=1)
    allows: list[Allow] = Field(default_factory=list)

    @field_validator("roles", mode="before")
    @classmethod
    def single_role(cls, v: object) -> object:
        return [v] if isinstance(v, str) else v

    @field_validator("roles")
    @classmethod
    def non_blank_roles(cls, v: list[str]) -> list[str]:
        names = [s.strip() for s in v if s and s.strip()]
        if not names:
            raise ValueError("role name must not be empty")
        return names


class PermissionsRequest(BaseModel):
    permissions: list[str] = Field(..., min_length=1)

    @field_validator("permissions", mode="before")
    @classmethod
    def split_names(cls, v: object) -> object:
        return _split_names(v)
