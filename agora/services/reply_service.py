"""
agora.services.reply_service — Replies under forum posts
==========================================================

Replies form a tree that is never more than two levels deep: a reply
either hangs off the post (``parent_reply_id IS NULL``) or off a
top-level reply.  Two entry points create replies:

* :func:`create_reply` — strict.  Targeting a reply that already has a
  parent raises :class:`~agora.errors.InvalidNesting`.  This is the
  contract of ``POST /api/posts/{id}/replies``.
* :func:`submit_reply` — what the comment UI calls.  A too-deep parent is
  re-targeted at its top-level ancestor instead.

Both re-read the post inside the write transaction with a shared row lock
(``FOR SHARE`` on PostgreSQL) so a concurrent lock cannot slip between the
check and the insert.  A locked post refuses every reply, the author's
included.

``posts.reply_count`` counts top-level replies and is recomputed from the
table after each write, best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agora.constants import MAX_BODY_LENGTH, clean_text
from agora.database.engine import get_session
from agora.database.models import Like, LikeTarget, Post, Reply
from agora.engine.identity import Viewer
from agora.engine.moderation import require_author, require_moderator
from agora.engine.normalizer import resolve_thread_parent
from agora.errors import InvalidNesting, NotFound, PostLocked

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReplyThread:
    """A top-level reply and its direct children, oldest first."""

    reply: Reply
    children: list[Reply] = field(default_factory=list)


def _live_post(
    session: Session, post_id: str, *, for_share: bool = False, for_update: bool = False
) -> Post:
    stmt = select(Post).where(Post.id == post_id)
    if for_update:
        stmt = stmt.with_for_update()
    elif for_share:
        stmt = stmt.with_for_update(read=True)
    post = session.scalar(stmt)
    if post is None or post.deleted_at is not None:
        raise NotFound("Post not found")
    return post


def get_reply(engine, reply_id: str) -> Reply:
    """A reply whose post is still live, else :class:`NotFound`."""
    with Session(engine, expire_on_commit=False) as session:
        reply = session.get(Reply, reply_id)
        if reply is None:
            raise NotFound("Reply not found")
        _live_post(session, reply.post_id)
        session.expunge(reply)
        return reply


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def create_reply(
    engine,
    post_id: str,
    viewer: Viewer,
    *,
    body: str,
    parent_reply_id: str | None = None,
    flatten: bool = False,
    max_body_length: int = MAX_BODY_LENGTH,
) -> Reply:
    """Insert a reply on *post_id*.

    Raises
    ------
    ValidationError
        Blank or over-long body.
    NotFound
        Post missing/deleted, or the parent is unknown or on another post.
    PostLocked
        The post is locked.
    InvalidNesting
        The parent already has a parent and *flatten* is false.
    """
    body = clean_text(body, "Reply", max_body_length)

    try:
        with get_session(engine) as session:
            post = _live_post(session, post_id, for_share=True)
            if post.is_locked:
                raise PostLocked()

            if parent_reply_id is not None:
                parent = session.get(Reply, parent_reply_id)
                if parent is None or parent.post_id != post.id:
                    raise NotFound("Parent reply not found")
                if parent.parent_reply_id is not None:
                    if not flatten:
                        raise InvalidNesting()
                    parent_reply_id = resolve_thread_parent(
                        parent.id,
                        {parent.id: parent.parent_reply_id, parent.parent_reply_id: None},
                    )

            reply = Reply(
                post_id=post.id,
                author_id=viewer.id,
                parent_reply_id=parent_reply_id,
                body=body,
            )
            session.add(reply)
    except IntegrityError:
        # Parent deleted between the check and the insert.
        logger.info(
            "Parent %s of a new reply on post %s is gone", parent_reply_id, post_id
        )
        raise NotFound("Parent reply not found")

    logger.info(
        "Reply %s on post %s by %s (parent=%s)",
        reply.id, post_id, viewer.id, reply.parent_reply_id,
    )
    if reply.parent_reply_id is None:
        refresh_reply_count(engine, post_id)
    return reply


def submit_reply(
    engine,
    post_id: str,
    viewer: Viewer,
    *,
    body: str,
    parent_reply_id: str | None = None,
    max_body_length: int = MAX_BODY_LENGTH,
) -> Reply:
    """Like :func:`create_reply`, but a reply to a nested reply is posted
    under that reply's top-level ancestor."""
    return create_reply(
        engine,
        post_id,
        viewer,
        body=body,
        parent_reply_id=parent_reply_id,
        flatten=True,
        max_body_length=max_body_length,
    )


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------
def update_reply(
    engine,
    reply_id: str,
    viewer: Viewer,
    *,
    body: str,
    max_body_length: int = MAX_BODY_LENGTH,
) -> Reply:
    body = clean_text(body, "Reply", max_body_length)
    with get_session(engine) as session:
        reply = session.get(Reply, reply_id)
        if reply is None:
            raise NotFound("Reply not found")
        _live_post(session, reply.post_id)
        require_author(viewer, reply.author_id, "edit this reply")
        reply.body = body
    return reply


def delete_reply(engine, reply_id: str, viewer: Viewer) -> None:
    """Delete a reply, its children and every like on them, atomically.

    If the reply (or one of its children) is the post's accepted answer,
    the pointer is cleared in the same transaction.  The post row stays
    locked until commit so a concurrent mark cannot point at a doomed row.
    """
    with get_session(engine) as session:
        reply = session.get(Reply, reply_id)
        if reply is None:
            raise NotFound("Reply not found")
        post = _live_post(session, reply.post_id, for_update=True)
        require_moderator(viewer, reply.author_id, "delete this reply")

        was_top_level = reply.parent_reply_id is None
        post_id = post.id
        doomed = [reply.id]
        doomed += session.scalars(
            select(Reply.id).where(Reply.parent_reply_id == reply.id)
        ).all()

        if post.accepted_reply_id in doomed:
            post.accepted_reply_id = None
            session.flush()

        session.execute(
            delete(Like).where(
                (Like.target_type == LikeTarget.REPLY.value)
                & (Like.target_id.in_(doomed))
            )
        )
        session.execute(delete(Reply).where(Reply.parent_reply_id == reply.id))
        session.execute(delete(Reply).where(Reply.id == reply.id))

    logger.info(
        "Reply %s deleted by %s (%d row(s) removed)", reply_id, viewer.id, len(doomed)
    )
    if was_top_level:
        refresh_reply_count(engine, post_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_replies_for_post(engine, post_id: str) -> list[ReplyThread]:
    """The post's replies grouped into two levels, oldest first."""
    with Session(engine, expire_on_commit=False) as session:
        _live_post(session, post_id)
        rows = session.scalars(
            select(Reply)
            .where(Reply.post_id == post_id)
            .order_by(Reply.created_at, Reply.id)
        ).all()
        session.expunge_all()

    threads: dict[str, ReplyThread] = {}
    nested: list[Reply] = []
    for row in rows:
        if row.parent_reply_id is None:
            threads[row.id] = ReplyThread(reply=row)
        else:
            nested.append(row)
    for row in nested:
        thread = threads.get(row.parent_reply_id)
        if thread is not None:
            thread.children.append(row)
        else:
            logger.warning(
                "Reply %s points at %s which is not a top-level reply of post %s",
                row.id, row.parent_reply_id, post_id,
            )
    return list(threads.values())


def list_user_replies(engine, user_id: str, *, limit: int = 50, offset: int = 0) -> list[Reply]:
    """*user_id*'s replies on live posts, newest first."""
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(Reply)
            .join(Post, Post.id == Reply.post_id)
            .where(Reply.author_id == user_id, Post.deleted_at.is_(None))
            .order_by(Reply.created_at.desc(), Reply.id)
            .limit(limit)
            .offset(offset)
        ).all()
        session.expunge_all()
        return list(rows)


# ---------------------------------------------------------------------------
# Counter maintenance
# ---------------------------------------------------------------------------
def refresh_reply_count(engine, post_id: str) -> int | None:
    """Recount top-level replies onto ``posts.reply_count``.  Best-effort.

    The count and the write are one UPDATE so a slower writer can never
    store a count older than the one already there.
    """
    recount = (
        select(func.count())
        .select_from(Reply)
        .where(Reply.post_id == post_id, Reply.parent_reply_id.is_(None))
        .scalar_subquery()
    )
    try:
        with get_session(engine) as session:
            session.execute(
                update(Post).where(Post.id == post_id).values(reply_count=recount)
            )
            count = session.scalar(select(Post.reply_count).where(Post.id == post_id))
        return count
    except SQLAlchemyError:
        logger.warning(
            "Could not refresh reply_count for post %s", post_id, exc_info=True
        )
        return None
