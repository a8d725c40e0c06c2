"""
vibes.api.deps — FastAPI dependency injection
==============================================

Viewer identity comes from a bearer JWT whose ``sub`` claim is the user id.
Issuing tokens belongs to the auth provider; this module only validates.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from vibes.config import VibesConfig, load_config
from vibes.database.engine import create_db_engine

_WEAK_SECRETS = frozenset({
    "vibes-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> VibesConfig:
    return load_config()


def _decode_bearer(authorization: str) -> str:
    if not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Token has no subject")
    return str(sub)


def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Validate the bearer JWT and return the viewer id.  401 if absent/invalid."""
    if not authorization:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    return _decode_bearer(authorization)


def get_optional_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str | None:
    """Viewer id for read endpoints that also work anonymously.

    A present but invalid token is still rejected.
    """
    if not authorization:
        return None
    return _decode_bearer(authorization)


EngineDep = Annotated[Engine, Depends(get_engine)]
ViewerDep = Annotated[str, Depends(get_current_user_id)]
OptionalViewerDep = Annotated[str | None, Depends(get_optional_user_id)]
ConfigDep = Annotated[VibesConfig, Depends(get_config)]
