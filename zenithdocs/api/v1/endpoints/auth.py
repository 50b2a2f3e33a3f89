"""
Auth endpoints: register, login, refresh, logout and current user.

The access token travels in JSON and is sent back as a Bearer header; the
refresh token only ever travels in an HttpOnly cookie.
"""

from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from zenithdocs.api.v1.deps import (
    get_current_identity,
    get_current_user,
    get_db,
    require_api_key,
)
from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import NotFoundError, UnauthenticatedError
from zenithdocs.core.permissions import Identity
from zenithdocs.core.rate_limit import limiter
from zenithdocs.models.user import User
from zenithdocs.schemas.token import AccessTokenData, TokenResponse
from zenithdocs.schemas.user import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserRead,
    UserResponse,
)
from zenithdocs.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_refresh_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=max_age,
        path="/",
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Create a regular user account. Admins are never created through here."""
    user = await AuthService(db).register(body.email, body.password)
    return UserResponse(
        message="User registered successfully",
        data=UserRead.model_validate(user),
    )


@router.post(
    "/login",
    response_model=TokenResponse,
    dependencies=[Depends(require_api_key)],
)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Authenticate with email/password. The refresh token is set as an HttpOnly cookie."""
    issued = await AuthService(db).login(body.email, body.password)
    _set_refresh_cookie(response, issued.refresh_token, issued.refresh_max_age)
    return TokenResponse(
        message="User logged in successfully",
        data=AccessTokenData(access_token=issued.access_token),
    )


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(settings.REFRESH_RATE_LIMIT)
async def refresh(
    request: Request,
    refresh_token: Optional[str] = Cookie(default=None, alias=settings.REFRESH_COOKIE_NAME),
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Mint a new access token from the refresh cookie."""
    try:
        access_token = await AuthService(db).refresh(refresh_token)
    except NotFoundError as exc:
        raise UnauthenticatedError("User not found", code="USER_NOT_FOUND") from exc
    return TokenResponse(
        message="Access token refreshed successfully",
        data=AccessTokenData(access_token=access_token),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Revoke the stored refresh token and clear the cookie."""
    await AuthService(db).logout(identity.subject_id)
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def read_current_user(
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Return profile of the currently authenticated user."""
    return UserResponse(data=UserRead.model_validate(current_user))
