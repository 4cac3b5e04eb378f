"""
agora.api.serializers — ORM rows → JSON-ready dicts
=====================================================
"""

from __future__ import annotations

from datetime import datetime

from agora.database.models import Forum, Post, Profile, Reply


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def forum_dict(f: Forum, post_count: int | None = None) -> dict:
    data = {
        "id": f.id,
        "name": f.name,
        "display_name": f.display_name,
        "description": f.description,
        "is_active": f.is_active,
        "created_at": _iso(f.created_at),
    }
    if post_count is not None:
        data["post_count"] = post_count
    return data


def post_dict(p: Post) -> dict:
    return {
        "id": p.id,
        "forum_id": p.forum_id,
        "author_id": p.author_id,
        "title": p.title,
        "body": p.body,
        "media_url": p.media_url,
        "media_type": p.media_type,
        "is_pinned": p.is_pinned,
        "is_locked": p.is_locked,
        "accepted_reply_id": p.accepted_reply_id,
        "view_count": p.view_count,
        "like_count": p.like_count,
        "reply_count": p.reply_count,
        "created_at": _iso(p.created_at),
        "updated_at": _iso(p.updated_at),
    }


def reply_dict(r: Reply) -> dict:
    return {
        "id": r.id,
        "post_id": r.post_id,
        "author_id": r.author_id,
        "parent_reply_id": r.parent_reply_id,
        "body": r.body,
        "like_count": r.like_count,
        "created_at": _iso(r.created_at),
        "updated_at": _iso(r.updated_at),
    }


def profile_dict(p: Profile) -> dict:
    return {**p.to_dict(), "updated_at": _iso(p.updated_at)}
