"""
User account endpoints.

- Listing users requires the admin role.
- Reading, updating and deleting ``/users/{user_id}`` is limited to the
  account owner or an admin.
- Changing a role additionally requires the admin role.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zenithdocs.api.v1.deps import (
    authorize_self_or_admin,
    get_db,
    require_admin,
    valid_user_id,
)
from zenithdocs.core.exceptions import NotFoundError
from zenithdocs.core.permissions import Capability, Identity, ensure_capability
from zenithdocs.core.security import hash_password_async
from zenithdocs.models.user import User
from zenithdocs.repositories.user import UserRepository
from zenithdocs.schemas.user import (
    MessageResponse,
    UserRead,
    UserResponse,
    UsersListResponse,
    UserUpdate,
)

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user_or_404(repo: UserRepository, user_id: str) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("", response_model=UsersListResponse)
async def list_users(
    db: AsyncSession = Depends(get_db),
    _admin: Identity = Depends(require_admin),
) -> UsersListResponse:
    """List all users (admin only)."""
    users = await UserRepository(db).list_all()
    return UsersListResponse(
        data=[UserRead.model_validate(u) for u in users],
        count=len(users),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    identity: Identity = Depends(authorize_self_or_admin),
    user_id: str = Depends(valid_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await _get_user_or_404(UserRepository(db), user_id)
    return UserResponse(data=UserRead.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    body: UserUpdate,
    identity: Identity = Depends(authorize_self_or_admin),
    user_id: str = Depends(valid_user_id),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Update email, password, plan or (admin only) role.

    A password change revokes the stored refresh token.
    """
    repo = UserRepository(db)
    user = await _get_user_or_404(repo, user_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in changes:
        ensure_capability(identity, Capability.CHANGE_ROLES, "Only Admin can change roles")

    password = changes.pop("password", None)
    if password is not None:
        changes["hashed_password"] = await hash_password_async(password)

    user = await repo.update_fields(user, **changes)
    if password is not None:
        await repo.clear_fingerprint(user.id)

    logger.info(
        "User %s updated by %s: %s",
        user.id,
        identity.subject_id,
        sorted(k for k in changes if k != "hashed_password"),
    )
    return UserResponse(
        message="User updated successfully",
        data=UserRead.model_validate(user),
    )


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    identity: Identity = Depends(authorize_self_or_admin),
    user_id: str = Depends(valid_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    repo = UserRepository(db)
    user = await _get_user_or_404(repo, user_id)
    await repo.delete(user)
    logger.info("User %s deleted by %s", user_id, identity.subject_id)
    return MessageResponse(message="User deleted successfully")
