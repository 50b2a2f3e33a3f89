"""User repository: the only code that reads or writes the ``users`` table.

All fingerprint writes go through here so the compare-and-swap on
``session_version`` cannot be bypassed.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zenithdocs.core.exceptions import ConflictError
from zenithdocs.core.permissions import Role
from zenithdocs.core.plans import Plan
from zenithdocs.models.user import User

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"email", "hashed_password", "role", "plan"}


class UserRepository:
    """Async persistence for :class:`User`. Never issues or verifies tokens."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ---------------------------- Lookups ----------------------------

    async def get_by_id(self, user_id: str) -> User | None:
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User)
            .where(User.email == email.strip().lower())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        result = await self.session.execute(select(User).order_by(User.created_at))
        return list(result.scalars().all())

    # ---------------------------- Writes ----------------------------

    async def create(
        self,
        *,
        email: str,
        hashed_password: str | None,
        role: Role = Role.USER,
        plan: Plan = Plan.FREE,
    ) -> User:
        """Insert a user; a duplicate email raises :class:`ConflictError`."""
        email = email.strip().lower()
        if await self.get_by_email(email) is not None:
            raise ConflictError("User already exists")

        user = User(
            email=email,
            hashed_password=hashed_password,
            role=Role(role).value,
            plan=Plan(plan).value,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # lost the race against a concurrent registration
            await self.session.rollback()
            raise ConflictError("User already exists") from exc
        await self.session.refresh(user)
        return user

    async def update_fields(self, user: User, **fields: Any) -> User:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {sorted(unknown)}")

        new_email = fields.get("email")
        if new_email is not None and new_email != user.email:
            if await self.get_by_email(new_email) is not None:
                raise ConflictError("Email already in use")

        for field, value in fields.items():
            setattr(user, field, value.value if isinstance(value, (Role, Plan)) else value)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise ConflictError("Email already in use") from exc
        await self.session.refresh(user)
        return user

    async def delete(self, user: User) -> None:
        await self.session.delete(user)
        await self.session.commit()

    # ---------------------------- Session fingerprint ----------------------------

    async def rotate_fingerprint(
        self, user_id: str, fingerprint: str, *, expected_version: int
    ) -> bool:
        """Store a new refresh fingerprint if nobody rotated it since ``expected_version``.

        :returns: ``True`` when the write won, ``False`` when the version moved.
        """
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.session_version == expected_version)
            .values(
                refresh_token_fingerprint=fingerprint,
                session_version=User.session_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        won = result.rowcount == 1
        if not won:
            logger.warning(
                "Fingerprint rotation lost for user %s (expected version %s)",
                user_id,
                expected_version,
            )
        return won

    async def clear_fingerprint(self, user_id: str) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                refresh_token_fingerprint=None,
                session_version=User.session_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
