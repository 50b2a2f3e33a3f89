"""
FastAPI dependencies: database session, API-key gate, authentication and
authorization guards.

Order matters: ``require_api_key`` runs at the transport boundary before any
identity is established; the role and ownership guards build on
``get_current_identity``.
"""

from __future__ import annotations

import hmac
from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends, Header, Path
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.ext.asyncio import AsyncSession

from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import ApiKeyError, UnauthenticatedError, ValidationError
from zenithdocs.core.permissions import (
    Capability,
    Identity,
    ensure_capability,
    ensure_self_or_admin,
)
from zenithdocs.core.security import decode_access_token
from zenithdocs.db.session import async_session_factory
from zenithdocs.models.user import User
from zenithdocs.repositories.user import UserRepository
from zenithdocs.schemas.user import is_valid_user_id


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Client gate ─────────────────────────────────────────────────────
async def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="x-api-key"),
) -> None:
    """Reject traffic that does not come from a known client application."""
    if not x_api_key or not hmac.compare_digest(
        x_api_key.encode("utf-8"), settings.API_KEY.encode("utf-8")
    ):
        raise ApiKeyError()


# ── Authentication ──────────────────────────────────────────────────
def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise UnauthenticatedError("Unauthorized access", code="TOKEN_MISSING")
    scheme, token = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not token:
        raise UnauthenticatedError(
            "Unauthorized access, no token provided", code="TOKEN_MISSING"
        )
    return token


async def get_current_identity(
    authorization: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Verify the Bearer access token and resolve the caller.

    The subject must still exist; a token for a deleted account is rejected.
    The role is read from the stored row, so a demotion applies immediately.
    """
    claims = decode_access_token(_bearer_token(authorization))

    user = await UserRepository(db).get_by_id(claims.sub)
    if user is None:
        raise UnauthenticatedError("User no longer exists", code="USER_NOT_FOUND")

    return Identity(subject_id=user.id, role=user.role_enum)


async def get_current_user(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserRepository(db).get_by_id(identity.subject_id)
    if user is None:
        raise UnauthenticatedError("User no longer exists", code="USER_NOT_FOUND")
    return user


# ── Authorization guards ────────────────────────────────────────────
async def require_admin(
    identity: Identity = Depends(get_current_identity),
) -> Identity:
    """Only allow admin role to proceed."""
    ensure_capability(
        identity,
        Capability.ADMINISTER,
        "Only Admin is allowed to access this resource",
    )
    return identity


def valid_user_id(user_id: str = Path(...)) -> str:
    if not is_valid_user_id(user_id):
        raise ValidationError("Invalid user id")
    return user_id


async def authorize_self_or_admin(
    identity: Identity = Depends(get_current_identity),
    user_id: str = Depends(valid_user_id),
) -> Identity:
    """Allow the owner of ``{user_id}`` or an admin."""
    ensure_self_or_admin(identity, user_id)
    return identity
