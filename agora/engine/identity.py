"""
agora.engine.identity — The Viewer envelope
=============================================

Authentication and role lookup live in the external identity provider.
Every operation receives the caller as a :class:`Viewer`; the HTTP layer
builds one from the bearer token's claims (see :mod:`agora.api.deps`).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

__all__ = ["Viewer", "owns_resource"]


@dataclass(frozen=True, slots=True)
class Viewer:
    """The authenticated caller of an operation."""

    id: str
    is_admin: bool = False
    can_post: bool = True

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> Viewer:
        """Build a viewer from decoded JWT claims (``sub``, ``is_admin``,
        ``can_post``).  A missing ``can_post`` claim means posting is allowed.
        """
        return cls(
            id=str(claims["sub"]),
            is_admin=bool(claims.get("is_admin", False)),
            can_post=bool(claims.get("can_post", True)),
        )


def owns_resource(viewer: Viewer | None, author_id: str | None) -> bool:
    if viewer is None or author_id is None:
        return False
    return viewer.id == author_id
