"""
agora.services.forum_service — Forum directory
================================================

Forums are the top-level buckets posts are filed under.  Members only
ever see active forums; admins create, rename and (soft) deactivate them.
Deactivating a forum keeps its posts readable but stops new posts from
being filed there.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from agora.constants import is_blank
from agora.database.engine import get_session
from agora.database.models import Forum, Post
from agora.engine.identity import Viewer
from agora.engine.moderation import require_admin
from agora.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ForumListing:
    forum: Forum
    post_count: int = 0


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_forums(engine, *, include_inactive: bool = False) -> list[ForumListing]:
    """Forums ordered by display name, each with its count of live posts."""
    counts = (
        select(Post.forum_id, func.count(Post.id).label("n"))
        .where(Post.deleted_at.is_(None))
        .group_by(Post.forum_id)
        .subquery()
    )
    stmt = (
        select(Forum, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.forum_id == Forum.id)
        .order_by(Forum.display_name, Forum.id)
    )
    if not include_inactive:
        stmt = stmt.where(Forum.is_active.is_(True))

    with Session(engine, expire_on_commit=False) as session:
        rows = session.execute(stmt).all()
        for forum, _ in rows:
            session.expunge(forum)
    return [ForumListing(forum=forum, post_count=int(n)) for forum, n in rows]


def get_forum(engine, forum_id: str) -> Forum:
    with Session(engine, expire_on_commit=False) as session:
        forum = session.get(Forum, forum_id)
        if forum is None:
            raise NotFound("Forum not found")
        session.expunge(forum)
        return forum


# ---------------------------------------------------------------------------
# Admin writes
# ---------------------------------------------------------------------------
def create_forum(
    engine,
    viewer: Viewer,
    *,
    name: str,
    display_name: str,
    description: str | None = None,
) -> Forum:
    require_admin(viewer, "create forums")
    if is_blank(name) or is_blank(display_name):
        raise ValidationError("Forum name and display name are required")

    forum = Forum(
        name=name.strip().lower(),
        display_name=display_name.strip(),
        description=description,
    )
    try:
        with get_session(engine) as session:
            session.add(forum)
    except IntegrityError:
        raise ValidationError(f"A forum named '{forum.name}' already exists")

    logger.info("Forum %s (%s) created by %s", forum.id, forum.name, viewer.id)
    return forum


def update_forum(
    engine,
    viewer: Viewer,
    forum_id: str,
    *,
    display_name: str | None = None,
    description: str | None = None,
    is_active: bool | None = None,
) -> Forum:
    require_admin(viewer, "edit forums")
    if display_name is not None and is_blank(display_name):
        raise ValidationError("Display name cannot be empty")

    with get_session(engine) as session:
        forum = session.get(Forum, forum_id)
        if forum is None:
            raise NotFound("Forum not found")
        if display_name is not None:
            forum.display_name = display_name.strip()
        if description is not None:
            forum.description = description
        if is_active is not None:
            forum.is_active = is_active

    logger.info(
        "Forum %s updated by %s (active=%s)", forum_id, viewer.id, forum.is_active
    )
    return forum
