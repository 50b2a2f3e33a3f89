"""
Authentication lifecycle: registration, login, refresh and logout.

Session model
-------------
Each user has at most one honoured refresh token, stored as a fingerprint on
the user row. Login overwrites it (single active session per user), refresh
only checks it, logout clears it. Fingerprint writes are compare-and-swap on
``User.session_version``; a login that loses the race fails with
:class:`SessionConflictError` instead of silently clobbering the winner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import (
    InvalidCredentialsError,
    NotFoundError,
    RefreshTokenMismatchError,
    SessionConflictError,
    UnauthenticatedError,
    ValidationError,
)
from zenithdocs.core.permissions import Role
from zenithdocs.core.security import (
    TokenLifetimes,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    fingerprint_matches,
    fingerprint_refresh_token,
    hash_password_async,
    verify_against_dummy_async,
    verify_password_async,
)
from zenithdocs.models.user import User
from zenithdocs.repositories.user import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful login. The refresh token must only leave via a cookie."""

    user: User
    access_token: str
    refresh_token: str
    refresh_lifetime: timedelta

    @property
    def refresh_max_age(self) -> int:
        return int(self.refresh_lifetime.total_seconds())


class AuthService:
    def __init__(self, session: AsyncSession) -> None:
        self.users = UserRepository(session)

    async def register(self, email: str, password: str, role: Role = Role.USER) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required")
        hashed = await hash_password_async(password)
        user = await self.users.create(email=email, hashed_password=hashed, role=role)
        logger.info("Registered user %s (%s)", user.id, user.email)
        return user

    async def login(self, email: str, password: str) -> IssuedSession:
        if not email or not password:
            raise ValidationError("Email and password required")

        user = await self.users.get_by_email(email)
        if user is None:
            logger.info("Login for unknown email %s", email.strip().lower())
            if settings.LOGIN_CONCEAL_UNKNOWN_EMAIL:
                # same bcrypt cost as a wrong password
                await verify_against_dummy_async(password)
                raise InvalidCredentialsError()
            raise NotFoundError("User not found")

        if not await verify_password_async(password, user.hashed_password):
            logger.info("Failed login for user %s", user.id)
            raise InvalidCredentialsError()

        role = user.role_enum
        lifetimes = TokenLifetimes.for_role(role)
        access_token = create_access_token(user.id, role, lifetimes.access)
        refresh_token = create_refresh_token(user.id, role, lifetimes.refresh)

        rotated = await self.users.rotate_fingerprint(
            user.id,
            fingerprint_refresh_token(refresh_token),
            expected_version=user.session_version,
        )
        if not rotated:
            raise SessionConflictError()

        logger.info("User %s logged in", user.id)
        return IssuedSession(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            refresh_lifetime=lifetimes.refresh,
        )

    async def refresh(self, presented_token: str | None) -> str:
        """Exchange the current refresh token for a new access token.

        The refresh token itself is not rotated here; only login replaces it.
        """
        if not presented_token:
            raise UnauthenticatedError(
                "No refresh token provided", code="REFRESH_TOKEN_MISSING"
            )

        claims = decode_refresh_token(presented_token)

        user = await self.users.get_by_id(claims.userId)
        if user is None:
            raise NotFoundError("User not found")

        if not fingerprint_matches(presented_token, user.refresh_token_fingerprint):
            logger.warning("Refresh token mismatch for user %s", user.id)
            raise RefreshTokenMismatchError()

        return create_access_token(user.id, user.role_enum)

    async def logout(self, subject_id: str) -> None:
        await self.users.clear_fingerprint(subject_id)
        logger.info("User %s logged out", subject_id)

