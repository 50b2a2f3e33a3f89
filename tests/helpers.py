"""Small HTTP helpers shared by the API tests."""

from httpx import AsyncClient, Response

from zenithdocs.core.config import settings
from zenithdocs.core.security import create_access_token

PREFIX = settings.API_V1_PREFIX
API_HEADERS = {"x-api-key": settings.API_KEY}
COOKIE = settings.REFRESH_COOKIE_NAME


def bearer(token: str, *, with_api_key: bool = True) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {token}"}
    if with_api_key:
        headers.update(API_HEADERS)
    return headers


def headers_for(user) -> dict[str, str]:
    return bearer(create_access_token(user.id, user.role))


async def login(client: AsyncClient, email: str, password: str) -> Response:
    return await client.post(
        f"{PREFIX}/auth/login",
        json={"email": email, "password": password},
        headers=API_HEADERS,
    )


async def refresh_with(client: AsyncClient, token: str | None) -> Response:
    """Call /auth/refresh presenting exactly ``token`` (or no cookie at all)."""
    client.cookies.clear()
    headers = {"Cookie": f"{COOKIE}={token}"} if token else {}
    return await client.post(f"{PREFIX}/auth/refresh", headers=headers)
