"""
agora.api.routes.forums — Forum directory + posting into a forum
==================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from agora.api.deps import get_config, get_current_viewer, get_engine
from agora.api.serializers import forum_dict, post_dict
from agora.config import AgoraConfig
from agora.engine.identity import Viewer
from agora.services import forum_service, post_service

router = APIRouter(prefix="/forums", tags=["forums"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ForumCreate(BaseModel):
    name: str = Field(..., max_length=100)
    display_name: str = Field(..., max_length=200)
    description: str | None = None


class ForumUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=200)
    description: str | None = None
    is_active: bool | None = None


class PostCreate(BaseModel):
    title: str
    body: str
    media_url: str | None = None
    media_type: str | None = None


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------
@router.get("")
def list_forums(engine=Depends(get_engine)):
    return [forum_dict(f.forum, f.post_count) for f in forum_service.list_forums(engine)]


@router.post("", status_code=201)
def create_forum(
    body: ForumCreate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    forum = forum_service.create_forum(
        engine,
        viewer,
        name=body.name,
        display_name=body.display_name,
        description=body.description,
    )
    return forum_dict(forum)


@router.patch("/{forum_id}")
def update_forum(
    forum_id: str,
    body: ForumUpdate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    forum = forum_service.update_forum(
        engine,
        viewer,
        forum_id,
        display_name=body.display_name,
        description=body.description,
        is_active=body.is_active,
    )
    return forum_dict(forum)


# ---------------------------------------------------------------------------
# Posts in a forum
# ---------------------------------------------------------------------------
@router.get("/{forum_id}/posts")
def list_forum_posts(
    forum_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    engine=Depends(get_engine),
):
    """Pinned posts first, then newest first."""
    posts = post_service.list_forum_posts(
        engine, forum_id, limit=page_size, offset=(page - 1) * page_size
    )
    return {
        "page": page,
        "page_size": page_size,
        "posts": [post_dict(p) for p in posts],
    }


@router.post("/{forum_id}/posts", status_code=201)
def create_post(
    forum_id: str,
    body: PostCreate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
    cfg: AgoraConfig = Depends(get_config),
):
    post = post_service.create_post(
        engine,
        forum_id,
        viewer,
        title=body.title,
        body=body.body,
        media_url=body.media_url,
        media_type=body.media_type,
        max_title_length=cfg.max_title_length,
        max_body_length=cfg.max_body_length,
    )
    return post_dict(post)
