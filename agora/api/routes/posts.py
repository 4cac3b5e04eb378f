"""
agora.api.routes.posts — Post detail, replies, likes and moderation
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agora.api.deps import get_config, get_current_viewer, get_engine, get_optional_viewer
from agora.api.serializers import post_dict, reply_dict
from agora.config import AgoraConfig
from agora.database.models import LikeTarget
from agora.engine.identity import Viewer
from agora.engine.moderation import PostState
from agora.engine.normalizer import SourceKind
from agora.services import comment_service, like_service, post_service, reply_service

router = APIRouter(prefix="/posts", tags=["posts"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class PostUpdate(BaseModel):
    title: str | None = None
    body: str | None = None


class ReplyCreate(BaseModel):
    body: str
    parent_reply_id: str | None = None


class LockRequest(BaseModel):
    locked: bool | None = None


class PinRequest(BaseModel):
    pinned: bool


# ---------------------------------------------------------------------------
# Detail / edit / delete
# ---------------------------------------------------------------------------
@router.get("/{post_id}")
def get_post(
    post_id: str,
    viewer: Viewer | None = Depends(get_optional_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    """The post, whether the caller liked it, and its reply tree."""
    viewer_id = viewer.id if viewer else None
    detail = post_service.get_post(engine, post_id, viewer_id)
    replies = comment_service.list_comments(
        engine,
        SourceKind.FORUM_REPLY,
        post_id,
        viewer_id=viewer_id,
        fallback_label=cfg.fallback_author_label,
    )
    return {
        **post_dict(detail.post),
        "user_liked": detail.user_liked,
        "replies": [node.to_dict() for node in replies],
    }


@router.patch("/{post_id}")
def update_post(
    post_id: str,
    body: PostUpdate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    post = post_service.update_post(
        engine,
        post_id,
        viewer,
        title=body.title,
        body=body.body,
        max_title_length=cfg.max_title_length,
        max_body_length=cfg.max_body_length,
    )
    return post_dict(post)


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    post_service.delete_post(engine, post_id, viewer)


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
@router.post("/{post_id}/replies", status_code=201)
def create_reply(
    post_id: str,
    body: ReplyCreate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    """Strict: replying to a nested reply is a 400 ``invalid_nesting``."""
    reply = reply_service.create_reply(
        engine,
        post_id,
        viewer,
        body=body.body,
        parent_reply_id=body.parent_reply_id,
        max_body_length=cfg.max_body_length,
    )
    return reply_dict(reply)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
@router.post("/{post_id}/like")
def toggle_like(
    post_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    result = like_service.toggle_like(engine, viewer.id, LikeTarget.POST, post_id)
    return {"liked": result.liked, "like_count": result.like_count}


@router.get("/{post_id}/likers")
def list_likers(
    post_id: str,
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    return like_service.list_likers(
        engine, LikeTarget.POST, post_id, fallback_label=cfg.fallback_author_label
    )


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------
@router.post("/{post_id}/lock")
def set_locked(
    post_id: str,
    body: LockRequest | None = None,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    """Lock or unlock; an empty body toggles."""
    state = post_service.set_locked(
        engine, post_id, viewer, body.locked if body else None
    )
    return {"is_locked": state is PostState.LOCKED, "state": state.value}


@router.post("/{post_id}/pin")
def set_pinned(
    post_id: str,
    body: PinRequest,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    post = post_service.set_pinned(engine, post_id, viewer, body.pinned)
    return {"is_pinned": post.is_pinned}
