"""
Password hashing (bcrypt) and JWT issuance / verification.

Access and refresh tokens are signed with different secrets and carry
different claim shapes; each decoder checks both, so one kind of token can
never be accepted as the other.
"""

from __future__ import annotations

import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import TokenExpiredError, TokenInvalidError
from zenithdocs.core.permissions import Role
from zenithdocs.schemas.token import AccessTokenClaims, RefreshTokenClaims

BCRYPT_ROUNDS = 10

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# ── Passwords ───────────────────────────────────────────────────────
def get_password_hash(plain: str) -> str:
    if not plain:
        raise ValueError("Cannot hash an empty password")
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    """Fail closed: a missing or malformed hash never verifies."""
    if not plain or not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


async def hash_password_async(plain: str) -> str:
    return await run_in_threadpool(get_password_hash, plain)


async def verify_password_async(plain: str, hashed: str | None) -> bool:
    return await run_in_threadpool(verify_password, plain, hashed)


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Throwaway hash with the real cost, for accounts that do not exist."""
    return get_password_hash(uuid.uuid4().hex)


async def verify_against_dummy_async(plain: str) -> None:
    """Spend one bcrypt verification without any account behind it."""
    await run_in_threadpool(lambda: verify_password(plain, dummy_password_hash()))


# ── Lifetimes ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class TokenLifetimes:
    access: timedelta
    refresh: timedelta

    @classmethod
    def for_role(cls, role: Role | str) -> "TokenLifetimes":
        if Role(role) is Role.ADMIN:
            return cls(
                access=timedelta(minutes=settings.ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES),
                refresh=timedelta(days=settings.ADMIN_REFRESH_TOKEN_EXPIRE_DAYS),
            )
        return cls(
            access=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )


# ── JWT tokens ──────────────────────────────────────────────────────
def create_access_token(
    subject_id: str,
    role: Role | str,
    expires_delta: timedelta | None = None,
) -> str:
    role = Role(role)
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or TokenLifetimes.for_role(role).access)
    return jwt.encode(
        {"sub": str(subject_id), "role": role.value, "type": "access", "iat": now, "exp": expire},
        settings.JWT_ACCESS_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def create_refresh_token(
    subject_id: str,
    role: Role | str,
    expires_delta: timedelta | None = None,
) -> str:
    # role only picks the lifetime; it is not embedded
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or TokenLifetimes.for_role(role).refresh)
    return jwt.encode(
        {
            "userId": str(subject_id),
            "type": "refresh",
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": expire,
        },
        settings.JWT_REFRESH_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def _decode(token: str, secret: str) -> dict[str, Any]:
    if not token:
        raise TokenInvalidError()
    try:
        return jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except JWTError as exc:
        raise TokenInvalidError() from exc


def decode_access_token(token: str) -> AccessTokenClaims:
    """Return the validated claims of an *access* token.

    Raises ``TokenExpiredError`` when expired and ``TokenInvalidError`` on any
    other signature, format or claim-shape problem.
    """
    payload = _decode(token, settings.JWT_ACCESS_SECRET)
    try:
        return AccessTokenClaims.model_validate(payload)
    except PydanticValidationError as exc:
        raise TokenInvalidError() from exc


def decode_refresh_token(token: str) -> RefreshTokenClaims:
    """Return the validated claims of a *refresh* token."""
    payload = _decode(token, settings.JWT_REFRESH_SECRET)
    try:
        return RefreshTokenClaims.model_validate(payload)
    except PydanticValidationError as exc:
        raise TokenInvalidError("Invalid refresh token") from exc


# ── Refresh fingerprints ────────────────────────────────────────────
def fingerprint_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def fingerprint_matches(token: str, stored: str | None) -> bool:
    if not stored:
        return False
    return hmac.compare_digest(fingerprint_refresh_token(token), stored)
