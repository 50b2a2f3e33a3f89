"""Pydantic schemas for login, registration and User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from zenithdocs.core.permissions import Role
from zenithdocs.core.plans import Plan

PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
_USER_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def normalise_email(v: str) -> str:
    v = v.strip().lower()
    if not v:
        raise ValueError("Email is required")
    if "@" not in v or v.startswith("@") or v.endswith("@"):
        raise ValueError("Invalid email address")
    return v


def is_valid_user_id(v: str) -> bool:
    return bool(_USER_ID_RE.match(v))


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class RegisterRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not (PASSWORD_MIN_LEN <= len(v) <= PASSWORD_MAX_LEN):
            raise ValueError(
                f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters"
            )
        return v


class UserUpdate(BaseModel):
    email: str | None = None
    password: str | None = None
    role: Role | None = None
    plan: Plan | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str | None) -> str | None:
        return normalise_email(v) if v is not None else None

    @field_validator("password")
    @classmethod
    def _password(cls, v: str | None) -> str | None:
        if v is not None and not (PASSWORD_MIN_LEN <= len(v) <= PASSWORD_MAX_LEN):
            raise ValueError(
                f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters"
            )
        return v


class UserRead(BaseModel):
    """Public user record. Never carries the password hash or refresh fingerprint."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    email: str
    role: Role
    plan: Plan
    token_limit: int = Field(serialization_alias="tokenLimit")
    created_at: datetime | None = Field(default=None, serialization_alias="createdAt")
    updated_at: datetime | None = Field(default=None, serialization_alias="updatedAt")


class UserResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: UserRead


class UsersListResponse(BaseModel):
    success: bool = True
    data: list[UserRead]
    count: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str
