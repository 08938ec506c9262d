"""Signed session tokens and extraction of the signed-in user."""

from __future__ import annotations

import os
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

import jwt

TOKEN_LIFETIME_SECONDS = 60 * 60 * 24
COOKIE_NAME = "auth_token"
_ALGORITHM = "HS256"
_LEEWAY_SECONDS = 60


class Unauthorized(Exception):
    """Raised when a request carries no valid session token."""


@dataclass(frozen=True)
class AuthenticatedUser:
    """The user a valid session token belongs to."""

    user_id: str


def jwt_secret() -> bytes:
    """Return the signing secret from the JWT_SECRET environment variable."""
    value = os.environ.get("JWT_SECRET")
    if value is None:
        raise RuntimeError("JWT_SECRET must be set in environment")
    return value.encode()


def create_jwt(user_id: str, secret: Optional[bytes] = None) -> str:
    """Create a token for the user that expires in 24 hours."""
    key = jwt_secret() if secret is None else secret
    claims = {"sub": user_id, "exp": int(time.time()) + TOKEN_LIFETIME_SECONDS}
    return jwt.encode(claims, key, algorithm=_ALGORITHM)


def validate_jwt(token: str, secret: Optional[bytes] = None) -> Optional[str]:
    """Return the token's user id if it is valid and unexpired, else None."""
    key = jwt_secret() if secret is None else secret
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=[_ALGORITHM],
            options={"require": ["exp"]},
            leeway=_LEEWAY_SECONDS,
        )
    except jwt.PyJWTError:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) else None


def authenticate(
    cookies: Mapping[str, str], secret: Optional[bytes] = None
) -> AuthenticatedUser:
    """Return the user named by the auth_token cookie, or raise Unauthorized."""
    token = cookies.get(COOKIE_NAME)
    if token:
        user_id = validate_jwt(token, secret)
        if user_id is not None:
            return AuthenticatedUser(user_id=user_id)
    raise Unauthorized("Unauthorized")