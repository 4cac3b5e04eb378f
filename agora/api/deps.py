"""
agora.api.deps — FastAPI dependency injection
===============================================

The identity provider issues HS256 bearer tokens signed with
``JWT_SECRET``; the claims ``sub``, ``is_admin`` and ``can_post`` become
the :class:`~agora.engine.identity.Viewer` every route passes down.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from agora.config import AgoraConfig, load_config
from agora.database.engine import create_db_engine
from agora.engine.identity import Viewer

_WEAK_SECRETS = frozenset({
    "agora-dev-secret-change-me",
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
            "It must match the secret the identity provider signs tokens with."
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
def get_config() -> AgoraConfig:
    return load_config()


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def _decode_viewer(authorization: str | None) -> Viewer | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return Viewer.from_claims(payload)


def get_current_viewer(
    authorization: Annotated[str | None, Header()] = None,
) -> Viewer:
    """Validate the bearer token and return the caller.  Raises 401."""
    viewer = _decode_viewer(authorization)
    if viewer is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    return viewer


def get_optional_viewer(
    authorization: Annotated[str | None, Header()] = None,
) -> Viewer | None:
    """Like :func:`get_current_viewer`, but anonymous reads are allowed.

    A token that is present but invalid is still a 401.
    """
    return _decode_viewer(authorization)
