"""
agora.services.post_service — Forum posts
===========================================

Owns the lifecycle of a post: creation, edits by its author, the lock /
pin moderation flags, soft deletion, and the listing queries the forum
pages and the member dashboard use.

A deleted post keeps its row (``deleted_at`` is set) but is invisible to
every read here, which raise :class:`~agora.errors.NotFound` for it.  Its
replies and every like on the post or those replies are hard-deleted in
the same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agora.constants import MAX_BODY_LENGTH, MAX_TITLE_LENGTH, MEDIA_TYPES, clean_text
from agora.database.engine import get_session
from agora.database.models import Forum, Like, LikeTarget, Post, Reply
from agora.engine.identity import Viewer
from agora.engine.moderation import (
    PostState,
    next_lock_state,
    require_admin,
    require_author,
    require_moderator,
)
from agora.errors import Forbidden, NotFound, ValidationError
from agora.services import like_service

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PostDetail:
    post: Post
    user_liked: bool = False


def _live_post(session: Session, post_id: str) -> Post:
    post = session.get(Post, post_id)
    if post is None or post.deleted_at is not None:
        raise NotFound("Post not found")
    return post


def _check_media(media_url: str | None, media_type: str | None) -> None:
    if media_url is None and media_type is None:
        return
    if not media_url or media_type not in MEDIA_TYPES:
        raise ValidationError(
            f"Media needs a URL and a type of {', '.join(sorted(MEDIA_TYPES))}"
        )


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------
def create_post(
    engine,
    forum_id: str,
    viewer: Viewer,
    *,
    title: str,
    body: str,
    media_url: str | None = None,
    media_type: str | None = None,
    max_title_length: int = MAX_TITLE_LENGTH,
    max_body_length: int = MAX_BODY_LENGTH,
) -> Post:
    if not viewer.can_post:
        raise Forbidden("You are not allowed to post in this forum")
    title = clean_text(title, "Title", max_title_length)
    body = clean_text(body, "Body", max_body_length)
    _check_media(media_url, media_type)

    with get_session(engine) as session:
        forum = session.get(Forum, forum_id)
        if forum is None or not forum.is_active:
            raise NotFound("Forum not found")
        post = Post(
            forum_id=forum.id,
            author_id=viewer.id,
            title=title,
            body=body,
            media_url=media_url,
            media_type=media_type,
        )
        session.add(post)

    logger.info("Post %s created in forum %s by %s", post.id, forum_id, viewer.id)
    return post


def get_post(engine, post_id: str, viewer_id: str | None = None) -> PostDetail:
    """Read a post and count the view.

    The view counter is bumped in its own transaction after the read; if
    that fails the read still succeeds.
    """
    with Session(engine, expire_on_commit=False) as session:
        post = _live_post(session, post_id)
        session.expunge(post)

    liked = like_service.has_liked(engine, viewer_id, LikeTarget.POST, post_id)

    try:
        with get_session(engine) as session:
            session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(view_count=Post.view_count + 1)
            )
        post.view_count = (post.view_count or 0) + 1
    except SQLAlchemyError:
        logger.warning("Could not count view on post %s", post_id, exc_info=True)

    return PostDetail(post=post, user_liked=liked)


# ---------------------------------------------------------------------------
# Author edits
# ---------------------------------------------------------------------------
def update_post(
    engine,
    post_id: str,
    viewer: Viewer,
    *,
    title: str | None = None,
    body: str | None = None,
    max_title_length: int = MAX_TITLE_LENGTH,
    max_body_length: int = MAX_BODY_LENGTH,
) -> Post:
    if title is None and body is None:
        raise ValidationError("Nothing to update")
    if title is not None:
        title = clean_text(title, "Title", max_title_length)
    if body is not None:
        body = clean_text(body, "Body", max_body_length)

    with get_session(engine) as session:
        post = _live_post(session, post_id)
        require_author(viewer, post.author_id, "edit this post")
        if title is not None:
            post.title = title
        if body is not None:
            post.body = body
    return post


def delete_post(engine, post_id: str, viewer: Viewer) -> None:
    """Soft-delete the post and hard-delete its replies and likes.

    Runs as one transaction: on any failure nothing is removed.
    """
    with get_session(engine) as session:
        post = _live_post(session, post_id)
        require_moderator(viewer, post.author_id, "delete this post")

        reply_ids = session.scalars(
            select(Reply.id).where(Reply.post_id == post.id)
        ).all()

        post.accepted_reply_id = None
        session.flush()

        session.execute(
            delete(Like).where(or_(
                (Like.target_type == LikeTarget.POST.value) & (Like.target_id == post.id),
                (Like.target_type == LikeTarget.REPLY.value) & (Like.target_id.in_(reply_ids)),
            ))
        )
        session.execute(
            delete(Reply).where(
                Reply.post_id == post.id, Reply.parent_reply_id.is_not(None)
            )
        )
        session.execute(delete(Reply).where(Reply.post_id == post.id))

        post.deleted_at = datetime.now(UTC)
        post.like_count = 0
        post.reply_count = 0

    logger.info(
        "Post %s deleted by %s (%d repl(ies) removed)",
        post_id, viewer.id, len(reply_ids),
    )


# ---------------------------------------------------------------------------
# Moderation flags
# ---------------------------------------------------------------------------
def set_locked(engine, post_id: str, viewer: Viewer, locked: bool | None = None) -> PostState:
    """Move the post to the requested lock state (``None`` toggles).

    Requesting the current state writes nothing.
    """
    with get_session(engine) as session:
        post = _live_post(session, post_id)
        require_moderator(viewer, post.author_id, "lock or unlock this post")

        current = PostState.of(post.is_locked)
        target = next_lock_state(current, locked)
        if target is current:
            return current
        post.is_locked = target is PostState.LOCKED

    logger.info("Post %s %s by %s", post_id, target.value, viewer.id)
    return target


def set_pinned(engine, post_id: str, viewer: Viewer, pinned: bool) -> Post:
    require_admin(viewer, "pin posts")
    with get_session(engine) as session:
        post = _live_post(session, post_id)
        post.is_pinned = pinned
    logger.info("Post %s pinned=%s by %s", post_id, pinned, viewer.id)
    return post


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------
def list_forum_posts(engine, forum_id: str, *, limit: int = 50, offset: int = 0) -> list[Post]:
    """Live posts of a forum: pinned first, then newest first."""
    with Session(engine, expire_on_commit=False) as session:
        if session.get(Forum, forum_id) is None:
            raise NotFound("Forum not found")
        rows = session.scalars(
            select(Post)
            .where(Post.forum_id == forum_id, Post.deleted_at.is_(None))
            .order_by(Post.is_pinned.desc(), Post.created_at.desc(), Post.id)
            .limit(limit)
            .offset(offset)
        ).all()
        session.expunge_all()
        return list(rows)


def list_user_posts(engine, user_id: str, *, limit: int = 50, offset: int = 0) -> list[Post]:
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(Post)
            .where(Post.author_id == user_id, Post.deleted_at.is_(None))
            .order_by(Post.created_at.desc(), Post.id)
            .limit(limit)
            .offset(offset)
        ).all()
        session.expunge_all()
        return list(rows)


def list_liked_posts(engine, user_id: str, *, limit: int = 50, offset: int = 0) -> list[Post]:
    """Live posts *user_id* has liked, newest post first."""
    with Session(engine, expire_on_commit=False) as session:
        rows = session.scalars(
            select(Post)
            .join(
                Like,
                (Like.target_id == Post.id)
                & (Like.target_type == LikeTarget.POST.value),
            )
            .where(Like.user_id == user_id, Post.deleted_at.is_(None))
            .order_by(Post.created_at.desc(), Post.id)
            .limit(limit)
            .offset(offset)
        ).all()
        session.expunge_all()
        return list(rows)
