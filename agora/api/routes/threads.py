"""
agora.api.routes.threads — Generic comment threads
====================================================

``kind`` is one of ``forum_reply``, ``blog_comment`` or
``announcement_comment``; ``target_id`` is the post, article or
announcement the thread hangs off.  Submissions here always flatten
replies-to-replies onto the top-level comment.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from agora.api.deps import get_config, get_current_viewer, get_engine, get_optional_viewer
from agora.config import AgoraConfig
from agora.engine.identity import Viewer
from agora.services import comment_service

router = APIRouter(prefix="/threads", tags=["threads"])


class CommentCreate(BaseModel):
    body: str
    parent_id: str | None = None


@router.get("/{kind}/{target_id}/comments")
def list_comments(
    kind: str,
    target_id: str,
    viewer: Viewer | None = Depends(get_optional_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    nodes = comment_service.list_comments(
        engine,
        kind,
        target_id,
        viewer_id=viewer.id if viewer else None,
        fallback_label=cfg.fallback_author_label,
    )
    return [node.to_dict() for node in nodes]


@router.post("/{kind}/{target_id}/comments", status_code=201)
def add_comment(
    kind: str,
    target_id: str,
    body: CommentCreate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    node = comment_service.add_comment(
        engine,
        kind,
        target_id,
        viewer,
        body=body.body,
        parent_id=body.parent_id,
        fallback_label=cfg.fallback_author_label,
        max_body_length=cfg.max_body_length,
    )
    return node.to_dict()


@router.delete("/{kind}/comments/{comment_id}", status_code=204)
def delete_comment(
    kind: str,
    comment_id: str,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    comment_service.delete_comment(engine, kind, comment_id, viewer)
