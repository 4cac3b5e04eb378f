"""
agora.services.like_service — The like ledger
===============================================

A like is a row in ``likes`` keyed by ``(user_id, target_type,
target_id)``.  Presence means "liked"; :func:`toggle_like` is the only
mutation.

**Concurrency:**
The composite primary key is the only guard.  A toggle first tries to
delete the caller's row; if nothing was deleted it inserts one.  When two
toggles from the same member race, the loser's INSERT hits the key and
rolls back; the row the winner wrote is exactly what the loser wanted, so
the call resolves to ``liked=True`` instead of erroring.

The ``like_count`` reported back is always re-counted from the ledger.
The cached counter on the post/reply row is refreshed afterwards in its
own transaction; a failure there is logged and never undoes the toggle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agora.constants import FALLBACK_AUTHOR_LABEL
from agora.database.engine import get_session
from agora.database.models import Like, LikeTarget, Post, Profile, Reply
from agora.errors import NotFound, ValidationError
from agora.services.profile_service import author_card

logger = logging.getLogger(__name__)

_TARGET_MODELS = {
    LikeTarget.POST: Post,
    LikeTarget.REPLY: Reply,
}


@dataclass(frozen=True, slots=True)
class LikeResult:
    liked: bool
    like_count: int


def _target_type(value: LikeTarget | str) -> LikeTarget:
    try:
        return LikeTarget(value)
    except ValueError:
        raise ValidationError(f"Unknown like target type: {value!r}")


def _require_target(session: Session, target_type: LikeTarget, target_id: str) -> None:
    """Raise :class:`NotFound` unless the target exists and its post is live."""
    row = session.get(_TARGET_MODELS[target_type], target_id)
    if row is None:
        raise NotFound(f"{target_type.value.title()} not found")
    post = row if target_type is LikeTarget.POST else session.get(Post, row.post_id)
    if post is None or post.deleted_at is not None:
        raise NotFound(f"{target_type.value.title()} not found")


def _match(user_id: str, target_type: LikeTarget, target_id: str):
    return (
        (Like.user_id == user_id)
        & (Like.target_type == target_type.value)
        & (Like.target_id == target_id)
    )


# ---------------------------------------------------------------------------
# Toggle
# ---------------------------------------------------------------------------
def toggle_like(engine, user_id: str, target_type: LikeTarget | str, target_id: str) -> LikeResult:
    """Flip *user_id*'s like on the target and return the new state."""
    target_type = _target_type(target_type)

    try:
        with get_session(engine) as session:
            _require_target(session, target_type, target_id)
            removed = session.execute(
                delete(Like).where(_match(user_id, target_type, target_id))
            ).rowcount
            if not removed:
                session.add(Like(
                    user_id=user_id,
                    target_type=target_type.value,
                    target_id=target_id,
                ))
            liked = not removed
    except IntegrityError:
        logger.info(
            "Concurrent like on %s %s by %s already recorded",
            target_type.value, target_id, user_id,
        )
        liked = True

    count = count_likes(engine, target_type, target_id)
    refresh_like_count(engine, target_type, target_id)
    return LikeResult(liked=liked, like_count=count)


def refresh_like_count(engine, target_type: LikeTarget, target_id: str) -> None:
    """Recount the ledger onto the target row.  Best-effort.

    The count is a subquery of the UPDATE itself, so whichever toggle
    writes last stores the ledger as of that write.
    """
    model = _TARGET_MODELS[target_type]
    recount = (
        select(func.count())
        .select_from(Like)
        .where((Like.target_type == target_type.value) & (Like.target_id == target_id))
        .scalar_subquery()
    )
    try:
        with get_session(engine) as session:
            session.execute(
                update(model).where(model.id == target_id).values(like_count=recount)
            )
    except SQLAlchemyError:
        logger.warning(
            "Could not refresh like_count for %s %s",
            target_type.value, target_id, exc_info=True,
        )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _count(session: Session, target_type: LikeTarget, target_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(Like).where(
            (Like.target_type == target_type.value) & (Like.target_id == target_id)
        )
    ) or 0


def count_likes(engine, target_type: LikeTarget | str, target_id: str) -> int:
    target_type = _target_type(target_type)
    with Session(engine) as session:
        return _count(session, target_type, target_id)


def has_liked(engine, user_id: str | None, target_type: LikeTarget | str, target_id: str) -> bool:
    if not user_id:
        return False
    target_type = _target_type(target_type)
    with Session(engine) as session:
        return session.scalar(
            select(Like.user_id).where(_match(user_id, target_type, target_id))
        ) is not None


def liked_target_ids(
    engine,
    user_id: str | None,
    target_type: LikeTarget | str,
    target_ids: Iterable[str],
) -> set[str]:
    """The subset of *target_ids* that *user_id* has liked."""
    ids = list(target_ids)
    if not user_id or not ids:
        return set()
    target_type = _target_type(target_type)
    with Session(engine) as session:
        rows = session.scalars(
            select(Like.target_id).where(
                (Like.user_id == user_id)
                & (Like.target_type == target_type.value)
                & (Like.target_id.in_(ids))
            )
        ).all()
    return set(rows)


def list_likers(
    engine,
    target_type: LikeTarget | str,
    target_id: str,
    *,
    fallback_label: str = FALLBACK_AUTHOR_LABEL,
) -> list[dict[str, Any]]:
    """Members who liked the target, most recent first, as author cards."""
    target_type = _target_type(target_type)
    with Session(engine) as session:
        _require_target(session, target_type, target_id)
        rows = session.execute(
            select(Like.user_id, Profile)
            .outerjoin(Profile, Profile.user_id == Like.user_id)
            .where(
                (Like.target_type == target_type.value)
                & (Like.target_id == target_id)
            )
            .order_by(Like.created_at.desc(), Like.user_id)
        ).all()
        return [
            author_card(
                user_id,
                profile.to_dict() if profile is not None else None,
                fallback_label,
            )
            for user_id, profile in rows
        ]
