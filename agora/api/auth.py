"""
agora.api.auth — Who am I
===========================

Sign-in happens at the identity provider; this router only reflects the
decoded token back, enriched with the member's mirrored profile.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from agora.api.deps import get_config, get_current_viewer, get_session
from agora.config import AgoraConfig
from agora.database.models import Profile
from agora.engine.identity import Viewer
from agora.services.profile_service import author_card

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me")
def me(
    viewer: Viewer = Depends(get_current_viewer),
    session: Session = Depends(get_session),
    cfg: AgoraConfig = Depends(get_config),
):
    profile = session.get(Profile, viewer.id)
    card = author_card(
        viewer.id,
        profile.to_dict() if profile is not None else None,
        cfg.fallback_author_label,
    )
    return {
        **card,
        "is_admin": viewer.is_admin,
        "can_post": viewer.can_post,
    }
