"""
agora.services.moderation_service — Accepted answers
======================================================

A post author (or an admin) can mark one top-level reply as the accepted
answer.  Marking a new answer replaces the old one; there is never more
than one.  Lock/unlock lives in :func:`agora.services.post_service.set_locked`.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agora.database.engine import get_session
from agora.database.models import Post, Reply
from agora.engine.identity import Viewer
from agora.engine.moderation import require_moderator
from agora.errors import NotFound

logger = logging.getLogger(__name__)


def _live_post(session: Session, post_id: str, *, for_update: bool = False) -> Post:
    stmt = select(Post).where(Post.id == post_id)
    if for_update:
        stmt = stmt.with_for_update()
    post = session.scalar(stmt)
    if post is None or post.deleted_at is not None:
        raise NotFound("Post not found")
    return post


def mark_answer(engine, post_id: str, reply_id: str, viewer: Viewer) -> Post:
    """Point the post's accepted answer at *reply_id*.

    The reply must be a top-level reply of this post, else
    :class:`~agora.errors.NotFound`.  The post row is locked for the whole
    transaction, the same lock :func:`~agora.services.reply_service.delete_reply`
    takes, and the reply row is share-locked.  A reply that vanishes anyway
    trips the foreign key and is reported as :class:`~agora.errors.NotFound`.
    """
    try:
        with get_session(engine) as session:
            post = _live_post(session, post_id, for_update=True)
            require_moderator(viewer, post.author_id, "mark an answer")

            reply = session.scalar(
                select(Reply).where(Reply.id == reply_id).with_for_update(read=True)
            )
            if reply is None or reply.post_id != post.id or reply.parent_reply_id is not None:
                raise NotFound("Reply not found on this post")

            previous = post.accepted_reply_id
            post.accepted_reply_id = reply.id
    except IntegrityError:
        logger.info("Reply %s removed while being marked on post %s", reply_id, post_id)
        raise NotFound("Reply not found on this post")

    logger.info(
        "Post %s answer %s → %s by %s", post_id, previous, reply_id, viewer.id
    )
    return post


def unmark_answer(engine, post_id: str, viewer: Viewer) -> Post:
    with get_session(engine) as session:
        post = _live_post(session, post_id, for_update=True)
        require_moderator(viewer, post.author_id, "unmark an answer")
        post.accepted_reply_id = None
    logger.info("Post %s answer cleared by %s", post_id, viewer.id)
    return post


def answer_reply(engine, reply_id: str, viewer: Viewer, *, mark: bool) -> Post:
    """Mark or unmark *reply_id* as its post's answer.

    Unmarking a reply that is not the current answer leaves the post as is.
    """
    with Session(engine) as session:
        reply = session.get(Reply, reply_id)
        if reply is None:
            raise NotFound("Reply not found")
        post_id = reply.post_id
        post = _live_post(session, post_id)
        accepted = post.accepted_reply_id

    if mark:
        return mark_answer(engine, post_id, reply_id, viewer)
    if accepted != reply_id:
        with Session(engine, expire_on_commit=False) as session:
            post = _live_post(session, post_id)
            require_moderator(viewer, post.author_id, "unmark an answer")
            session.expunge(post)
        return post
    return unmark_answer(engine, post_id, viewer)
