"""
agora.services.comment_service — Comment threads for every source
===================================================================

One entry point for the three places members can comment:

==========================  ==================  ===========================
kind                        target              storage
==========================  ==================  ===========================
``forum_reply``             a forum post        ``replies`` (+ likes)
``blog_comment``            a blog article      ``blog_comments``
``announcement_comment``    an announcement     ``announcement_comments``
==========================  ==================  ===========================

Reads come back as :class:`~agora.engine.normalizer.CommentNode` trees.
Writes through here always flatten: a comment aimed at a nested comment
is attached to that comment's top-level ancestor, for every kind.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from agora.constants import FALLBACK_AUTHOR_LABEL, MAX_BODY_LENGTH, clean_text
from agora.database.engine import get_session
from agora.database.models import AnnouncementComment, BlogComment, LikeTarget, Reply
from agora.engine.identity import Viewer
from agora.engine.moderation import require_moderator
from agora.engine.normalizer import CommentNode, SourceKind, normalize, resolve_thread_parent
from agora.errors import NotFound, ValidationError
from agora.services import like_service, reply_service
from agora.services.profile_service import profile_map

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-kind storage details
# ---------------------------------------------------------------------------
# model, target column, author column, key the normalizer reads the author under
_STORES: dict[SourceKind, tuple[type, str, str, str]] = {
    SourceKind.BLOG_COMMENT: (BlogComment, "blog_post_id", "user_id", "user"),
    SourceKind.ANNOUNCEMENT_COMMENT: (
        AnnouncementComment, "announcement_id", "author_id", "author",
    ),
}


def _kind(value: SourceKind | str) -> SourceKind:
    try:
        return SourceKind(value)
    except ValueError:
        raise ValidationError(f"Unknown comment kind: {value!r}")


def _comment_record(row, author_attr: str, author_key: str, profiles: dict) -> dict[str, Any]:
    author_id = getattr(row, author_attr)
    return {
        "id": row.id,
        author_attr: author_id,
        "content": row.content,
        "parent_id": row.parent_id,
        "created_at": row.created_at,
        author_key: profiles.get(author_id),
    }


def _reply_record(reply: Reply, profiles: dict, liked: set[str]) -> dict[str, Any]:
    return {
        "id": reply.id,
        "user_id": reply.author_id,
        "content": reply.body,
        "parent_id": reply.parent_reply_id,
        "created_at": reply.created_at,
        "likes_count": reply.like_count,
        "user_liked": reply.id in liked,
        "profile": profiles.get(reply.author_id),
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def _forum_records(engine, post_id: str, viewer_id: str | None) -> list[dict[str, Any]]:
    threads = reply_service.list_replies_for_post(engine, post_id)
    replies = [r for t in threads for r in (t.reply, *t.children)]
    liked = like_service.liked_target_ids(
        engine, viewer_id, LikeTarget.REPLY, [r.id for r in replies]
    )
    with Session(engine) as session:
        profiles = profile_map(session, {r.author_id for r in replies})
    return [_reply_record(r, profiles, liked) for r in replies]


def list_comments(
    engine,
    kind: SourceKind | str,
    target_id: str,
    *,
    viewer_id: str | None = None,
    fallback_label: str = FALLBACK_AUTHOR_LABEL,
) -> list[CommentNode]:
    kind = _kind(kind)
    if kind is SourceKind.FORUM_REPLY:
        records = _forum_records(engine, target_id, viewer_id)
    else:
        model, target_attr, author_attr, author_key = _STORES[kind]
        with Session(engine) as session:
            rows = session.scalars(
                select(model)
                .where(getattr(model, target_attr) == target_id)
                .order_by(model.created_at, model.id)
            ).all()
            profiles = profile_map(session, {getattr(r, author_attr) for r in rows})
            records = [_comment_record(r, author_attr, author_key, profiles) for r in rows]
    return normalize(records, kind, fallback_label=fallback_label)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def _top_level_anchor(session: Session, model, parent) -> str | None:
    parent_of: dict[str, str | None] = {}
    current = parent
    while current is not None and current.id not in parent_of:
        parent_of[current.id] = current.parent_id
        current = session.get(model, current.parent_id) if current.parent_id else None
    return resolve_thread_parent(parent.id, parent_of)


def add_comment(
    engine,
    kind: SourceKind | str,
    target_id: str,
    viewer: Viewer,
    *,
    body: str,
    parent_id: str | None = None,
    fallback_label: str = FALLBACK_AUTHOR_LABEL,
    max_body_length: int = MAX_BODY_LENGTH,
) -> CommentNode:
    """Post a comment and return it as a (childless) node."""
    kind = _kind(kind)

    if kind is SourceKind.FORUM_REPLY:
        reply = reply_service.submit_reply(
            engine, target_id, viewer,
            body=body, parent_reply_id=parent_id, max_body_length=max_body_length,
        )
        with Session(engine) as session:
            profiles = profile_map(session, [viewer.id])
        record = _reply_record(reply, profiles, set())
        return normalize([record], kind, fallback_label=fallback_label)[0]

    body = clean_text(body, "Comment", max_body_length)
    model, target_attr, author_attr, author_key = _STORES[kind]

    with get_session(engine) as session:
        anchor = None
        if parent_id is not None:
            parent = session.get(model, parent_id)
            if parent is None or getattr(parent, target_attr) != target_id:
                raise NotFound("Parent comment not found")
            anchor = _top_level_anchor(session, model, parent)

        row = model(
            **{target_attr: target_id, author_attr: viewer.id},
            parent_id=anchor,
            content=body,
        )
        session.add(row)
        session.flush()
        profiles = profile_map(session, [viewer.id])
        record = _comment_record(row, author_attr, author_key, profiles)

    logger.info("%s %s on %s by %s", kind.value, row.id, target_id, viewer.id)
    return normalize([record], kind, fallback_label=fallback_label)[0]


def delete_comment(engine, kind: SourceKind | str, comment_id: str, viewer: Viewer) -> None:
    """Delete a comment and everything below it (author or admin)."""
    kind = _kind(kind)
    if kind is SourceKind.FORUM_REPLY:
        reply_service.delete_reply(engine, comment_id, viewer)
        return

    model, _, author_attr, _ = _STORES[kind]
    with get_session(engine) as session:
        row = session.get(model, comment_id)
        if row is None:
            raise NotFound("Comment not found")
        require_moderator(viewer, getattr(row, author_attr), "delete this comment")

        doomed = [row.id]
        frontier = [row.id]
        while frontier:
            frontier = [
                cid for cid in session.scalars(
                    select(model.id).where(model.parent_id.in_(frontier))
                ).all()
                if cid not in doomed
            ]
            doomed.extend(frontier)

        # Deepest first so self-referencing foreign keys never dangle.
        for cid in reversed(doomed):
            session.execute(delete(model).where(model.id == cid))

    logger.info(
        "%s %s deleted by %s (%d row(s))", kind.value, comment_id, viewer.id, len(doomed)
    )
