"""
agora.api.routes.me — The caller's own posts, replies, likes and profile
==========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from agora.api.deps import get_current_viewer, get_engine
from agora.api.serializers import post_dict, profile_dict, reply_dict
from agora.engine.identity import Viewer
from agora.services import post_service, profile_service, reply_service

router = APIRouter(prefix="/me", tags=["me"])


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=100)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    nickname: str | None = Field(None, max_length=100)
    avatar_url: str | None = Field(None, max_length=500)


def _paging(page: int, page_size: int) -> dict:
    return {"limit": page_size, "offset": (page - 1) * page_size}


@router.get("/posts")
def my_posts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    posts = post_service.list_user_posts(engine, viewer.id, **_paging(page, page_size))
    return [post_dict(p) for p in posts]


@router.get("/replies")
def my_replies(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    replies = reply_service.list_user_replies(engine, viewer.id, **_paging(page, page_size))
    return [reply_dict(r) for r in replies]


@router.get("/liked-posts")
def my_liked_posts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    posts = post_service.list_liked_posts(engine, viewer.id, **_paging(page, page_size))
    return [post_dict(p) for p in posts]


@router.put("/profile")
def update_profile(
    body: ProfileUpdate,
    viewer: Viewer = Depends(get_current_viewer),
    engine=Depends(get_engine),
):
    profile = profile_service.upsert_profile(engine, viewer.id, **body.model_dump())
    return profile_dict(profile)
