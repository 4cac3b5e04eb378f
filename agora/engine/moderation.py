"""
agora.engine.moderation — Post lock state machine & moderation gates
======================================================================

A post is either ``OPEN`` or ``LOCKED``.  The only transitions are
``OPEN → LOCKED`` and ``LOCKED → OPEN``, both requested through
``post_service.set_locked`` and gated on author-or-admin.  There are no
timed transitions.

Answer marking is not a state of its own: it is a pointer on the post,
guarded by the same author-or-admin gate.

Everything here is pure; the services load rows and persist the result.
"""

from __future__ import annotations

import enum

from agora.engine.identity import Viewer, owns_resource
from agora.errors import Forbidden

__all__ = [
    "PostState",
    "can_moderate",
    "require_moderator",
    "require_admin",
    "require_author",
    "next_lock_state",
]


class PostState(enum.StrEnum):
    OPEN = "open"
    LOCKED = "locked"

    @classmethod
    def of(cls, is_locked: bool) -> PostState:
        return cls.LOCKED if is_locked else cls.OPEN


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------
def can_moderate(viewer: Viewer | None, author_id: str) -> bool:
    """Author of the post, or an admin."""
    if viewer is None:
        return False
    return viewer.is_admin or owns_resource(viewer, author_id)


def require_moderator(viewer: Viewer | None, author_id: str, action: str) -> None:
    if not can_moderate(viewer, author_id):
        raise Forbidden(f"Only the author or an admin can {action}")


def require_admin(viewer: Viewer | None, action: str) -> None:
    if viewer is None or not viewer.is_admin:
        raise Forbidden(f"Only an admin can {action}")


def require_author(viewer: Viewer | None, author_id: str, action: str) -> None:
    if not owns_resource(viewer, author_id):
        raise Forbidden(f"Only the author can {action}")


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def next_lock_state(current: PostState, locked: bool | None) -> PostState:
    """Resolve a lock request against the current state.

    ``locked=None`` toggles.  Requesting the state the post is already in
    returns it unchanged, which callers treat as a no-op.
    """
    if locked is None:
        return PostState.OPEN if current is PostState.LOCKED else PostState.LOCKED
    return PostState.of(locked)
