"""
User model: credentials, role and the single active refresh fingerprint.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from zenithdocs.core.permissions import Role
from zenithdocs.core.plans import Plan, token_limit_for
from zenithdocs.db.base import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: str = Column(String(32), primary_key=True, default=_new_id)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str | None = Column(String(128), nullable=True)  # type: ignore[assignment]
    role: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Role.USER.value,
        server_default=Role.USER.value,
    )  # user | admin
    plan: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default=Plan.FREE.value,
        server_default=Plan.FREE.value,
    )
    # sha256 of the one refresh token currently honoured for this user
    refresh_token_fingerprint: str | None = Column(String(64), nullable=True)  # type: ignore[assignment]
    session_version: int = Column(  # type: ignore[assignment]
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    @property
    def token_limit(self) -> int:
        return token_limit_for(self.plan)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)
