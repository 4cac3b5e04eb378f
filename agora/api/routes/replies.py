"""
agora.api.routes.replies — Reply likes, answers, edits and deletion
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agora.api.deps import get_config, get_current_viewer, get_engine
from agora.api.serializers import reply_dict
from agora.config import AgoraConfig
from agora.database.models import LikeTarget
from agora.engine.identity import Viewer
from agora.services import like_service, moderation_service, reply_service

router = APIRouter(prefix="/replies", tags=["replies"])


class ReplyUpdate(BaseModel):
    body: str


class AnswerRequest(BaseModel):
    mark: bool = True


@router.post("/{reply_id}/like")
def toggle_like(
    reply_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    result = like_service.toggle_like(engine, viewer.id, LikeTarget.REPLY, reply_id)
    return {"liked": result.liked, "like_count": result.like_count}


@router.get("/{reply_id}/likers")
def list_likers(
    reply_id: str,
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    return like_service.list_likers(
        engine, LikeTarget.REPLY, reply_id, fallback_label=cfg.fallback_author_label
    )


@router.post("/{reply_id}/answer")
def answer(
    reply_id: str,
    body: AnswerRequest,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    """Mark (or with ``mark=false`` unmark) the reply as the post's answer."""
    post = moderation_service.answer_reply(engine, reply_id, viewer, mark=body.mark)
    return {"post_id": post.id, "accepted_reply_id": post.accepted_reply_id}


@router.patch("/{reply_id}")
def update_reply(
    reply_id: str,
    body: ReplyUpdate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    reply = reply_service.update_reply(
        engine, reply_id, viewer, body=body.body, max_body_length=cfg.max_body_length
    )
    return reply_dict(reply)


@router.delete("/{reply_id}", status_code=204)
def delete_reply(
    reply_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    reply_service.delete_reply(engine, reply_id, viewer)
