"""Password hashing and token issuer/verifier tests."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from zenithdocs.core.config import settings
from zenithdocs.core.exceptions import TokenExpiredError, TokenInvalidError
from zenithdocs.core.permissions import Role
from zenithdocs.core.security import (
    TokenLifetimes,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    fingerprint_matches,
    fingerprint_refresh_token,
    get_password_hash,
    hash_password_async,
    verify_password,
    verify_password_async,
)

SUBJECT = "0123456789abcdef0123456789abcdef"


# ── Passwords ───────────────────────────────────────────────────────
@pytest.mark.parametrize("password", ["secret1", "correct horse battery staple", "pässwörd✓"])
def test_hash_then_verify(password):
    hashed = get_password_hash(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert not verify_password(password + "x", hashed)


def test_hash_is_salted():
    assert get_password_hash("secret1") != get_password_hash("secret1")


def test_hash_rejects_empty_password():
    with pytest.raises(ValueError):
        get_password_hash("")


@pytest.mark.parametrize("bad_hash", [None, "", "not-a-bcrypt-hash", "$2b$10$short"])
def test_verify_fails_closed_on_malformed_hash(bad_hash):
    assert verify_password("secret1", bad_hash) is False


@pytest.mark.asyncio
async def test_async_hashing_round_trip():
    hashed = await hash_password_async("secret1")
    assert await verify_password_async("secret1", hashed)
    assert not await verify_password_async("secret2", hashed)


# ── Token claims ────────────────────────────────────────────────────
def test_access_token_claims():
    claims = decode_access_token(create_access_token(SUBJECT, Role.ADMIN))
    assert claims.sub == SUBJECT
    assert claims.role is Role.ADMIN
    assert claims.type == "access"


def test_refresh_token_has_no_role_and_is_unique():
    first = create_refresh_token(SUBJECT, Role.USER)
    second = create_refresh_token(SUBJECT, Role.USER)
    assert first != second

    claims = decode_refresh_token(first)
    assert claims.userId == SUBJECT
    assert "role" not in jwt.get_unverified_claims(first)


def test_access_token_is_not_a_refresh_token():
    with pytest.raises(TokenInvalidError):
        decode_refresh_token(create_access_token(SUBJECT, Role.USER))


def test_refresh_token_is_not_an_access_token():
    with pytest.raises(TokenInvalidError):
        decode_access_token(create_refresh_token(SUBJECT, Role.USER))


def test_claim_shape_checked_even_with_the_right_secret():
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=5)
    access_shaped = jwt.encode(
        {"sub": SUBJECT, "role": "user", "type": "access", "iat": now, "exp": exp},
        settings.JWT_REFRESH_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    refresh_shaped = jwt.encode(
        {"userId": SUBJECT, "type": "refresh", "jti": "abc", "iat": now, "exp": exp},
        settings.JWT_ACCESS_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(TokenInvalidError):
        decode_refresh_token(access_shaped)
    with pytest.raises(TokenInvalidError):
        decode_access_token(refresh_shaped)


def test_unknown_role_is_rejected():
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": SUBJECT, "role": "superuser", "type": "access", "iat": now,
         "exp": now + timedelta(minutes=5)},
        settings.JWT_ACCESS_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    with pytest.raises(TokenInvalidError):
        decode_access_token(token)


@pytest.mark.parametrize("garbage", ["", "abc", "a.b.c"])
def test_garbage_tokens_are_invalid(garbage):
    with pytest.raises(TokenInvalidError):
        decode_access_token(garbage)
    with pytest.raises(TokenInvalidError):
        decode_refresh_token(garbage)


# ── Expiry ──────────────────────────────────────────────────────────
def test_access_token_accepted_before_expiry():
    token = create_access_token(SUBJECT, Role.USER, expires_delta=timedelta(seconds=30))
    assert decode_access_token(token).sub == SUBJECT


def test_access_token_rejected_after_expiry():
    token = create_access_token(SUBJECT, Role.USER, expires_delta=timedelta(seconds=-1))
    with pytest.raises(TokenExpiredError):
        decode_access_token(token)


def test_refresh_token_rejected_after_expiry():
    token = create_refresh_token(SUBJECT, Role.USER, expires_delta=timedelta(seconds=-1))
    with pytest.raises(TokenExpiredError):
        decode_refresh_token(token)


def test_lifetimes_follow_role(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES", 120)
    monkeypatch.setattr(settings, "ADMIN_REFRESH_TOKEN_EXPIRE_DAYS", 30)

    assert TokenLifetimes.for_role(Role.USER) == TokenLifetimes(
        access=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    assert TokenLifetimes.for_role("admin") == TokenLifetimes(
        access=timedelta(minutes=120), refresh=timedelta(days=30)
    )

    claims = jwt.get_unverified_claims(create_access_token(SUBJECT, Role.ADMIN))
    assert claims["exp"] - claims["iat"] == 120 * 60


# ── Fingerprints ────────────────────────────────────────────────────
def test_fingerprint_matches_only_the_same_token():
    token = create_refresh_token(SUBJECT, Role.USER)
    stored = fingerprint_refresh_token(token)
    assert len(stored) == 64
    assert fingerprint_matches(token, stored)
    assert not fingerprint_matches(create_refresh_token(SUBJECT, Role.USER), stored)
    assert not fingerprint_matches(token, None)
