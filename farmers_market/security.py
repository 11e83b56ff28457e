"""Password hashing, access-token issuance and the bearer-token guard."""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hmac import compare_digest
from typing import Annotated, Any, Mapping

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from farmers_market.config import settings
from farmers_market.errors import UnauthorizedError

logger = logging.getLogger(__name__)

_BEARER_SCHEME = HTTPBearer(auto_error=False)

_SALT_BYTES = 16
_KEY_LEN = 32
_SCRYPT_N = 2 ** 14
_SCRYPT_R = 8
_SCRYPT_P = 1


@dataclass(frozen=True, slots=True)
class Principal:
    """The authenticated member behind a verified access token."""

    id: str
    name: str
    email: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode(value: bytes) -> str:
    return base64.urlsafe_b64encode(value).decode("ascii").rstrip("=")


def _decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Return an scrypt hash for the supplied password."""

    salt = secrets.token_bytes(_SALT_BYTES)
    key = hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_KEY_LEN,
    )
    return "scrypt$%d$%d$%d$%s$%s" % (
        _SCRYPT_N,
        _SCRYPT_R,
        _SCRYPT_P,
        _encode(salt),
        _encode(key),
    )


def verify_password(password: str, hashed: str) -> bool:
    """Return ``True`` when the supplied password matches the stored hash."""

    try:
        _, n_str, r_str, p_str, salt_b64, key_b64 = hashed.split("$", 5)
        n = int(n_str)
        r = int(r_str)
        p = int(p_str)
        salt = _decode(salt_b64)
        expected = _decode(key_b64)
    except (ValueError, TypeError):
        return False

    try:
        candidate = hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt,
            n=n,
            r=r,
            p=p,
            dklen=len(expected),
        )
    except ValueError:
        return False

    return compare_digest(candidate, expected)


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, password, hashed)


# Compared against when the email is unknown so both failure paths cost the same.
_DUMMY_HASH = hash_password(secrets.token_urlsafe(16))


async def authenticate_member(member: Mapping[str, Any] | None, password: str) -> bool:
    """Return ``True`` when *member* exists and *password* matches its hash."""

    if member is None:
        await verify_password_async(password, _DUMMY_HASH)
        return False
    return await verify_password_async(password, member["password"])


# ---------------------------------------------------------------------------
# Access tokens
# ---------------------------------------------------------------------------

def _load_key(encoded: str, name: str) -> bytes:
    if not encoded:
        raise RuntimeError(f"{name} must be configured to issue or verify access tokens")
    return base64.b64decode(encoded)


def create_access_token(member: Mapping[str, Any], *, expires_delta: timedelta | None = None) -> str:
    """Sign a short-lived token carrying the member's public profile claims."""

    private_key = _load_key(settings.ACCESS_TOKEN_SECRET_PRIVATE, "ACCESS_TOKEN_SECRET_PRIVATE")
    issued_at = _now()
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES)
    )
    payload = {
        "sub": member["id"],
        "name": member["name"],
        "location": member.get("location"),
        "phone": member["phone"],
        "email": member["email"],
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, private_key, algorithm=settings.ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Principal:
    """Return the token's principal or raise ``UnauthorizedError``."""

    public_key = _load_key(settings.ACCESS_TOKEN_SECRET_PUBLIC, "ACCESS_TOKEN_SECRET_PUBLIC")
    try:
        payload = jwt.decode(
            token,
            public_key,
            algorithms=[settings.ACCESS_TOKEN_ALGORITHM],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Access token expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError() from exc

    try:
        return Principal(
            id=str(payload["sub"]),
            name=str(payload.get("name", "")),
            email=str(payload.get("email", "")),
        )
    except (KeyError, TypeError) as exc:
        raise UnauthorizedError() from exc


async def authenticate_jwt(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_BEARER_SCHEME)],
) -> Principal:
    """
    Guard for protected routes.

    Expects ``Authorization: Bearer <token>``; on success the principal is
    stored on ``request.state.principal`` and returned, otherwise the request
    halts with 401.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError()

    principal = decode_access_token(credentials.credentials)
    request.state.principal = principal
    return principal


CurrentPrincipal = Annotated[Principal, Depends(authenticate_jwt)]
