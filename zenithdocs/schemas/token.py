"""Pydantic schemas for JWT claims and token responses."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from zenithdocs.core.permissions import Role


class AccessTokenClaims(BaseModel):
    """Exact claim set of an access token; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    sub: str = Field(min_length=1)
    role: Role
    type: Literal["access"]
    iat: int
    exp: int


class RefreshTokenClaims(BaseModel):
    """Exact claim set of a refresh token. Carries no role."""

    model_config = ConfigDict(extra="forbid")

    userId: str = Field(min_length=1)
    type: Literal["refresh"]
    jti: str = Field(min_length=1)
    iat: int
    exp: int


class AccessTokenData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(serialization_alias="accessToken")
    token_type: str = Field(default="bearer", serialization_alias="tokenType")


class TokenResponse(BaseModel):
    success: bool = True
    message: str
    data: AccessTokenData
