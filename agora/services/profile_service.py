"""
agora.services.profile_service — Member display fields
========================================================

The identity provider owns accounts; this table mirrors just the fields
needed to render an author or a liker (name variants and avatar).
Members edit their own row through ``PUT /api/me/profile``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from agora.constants import FALLBACK_AUTHOR_LABEL, display_name_for
from agora.database.models import Profile

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("display_name", "first_name", "last_name", "nickname", "avatar_url")


def get_profile(engine, user_id: str) -> Profile | None:
    with Session(engine, expire_on_commit=False) as session:
        row = session.get(Profile, user_id)
        if row is not None:
            session.expunge(row)
        return row


def profile_map(session: Session, user_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
    """Load profiles for *user_ids* from an open session, keyed by user id.

    Members without a row are simply absent from the result.
    """
    ids = {uid for uid in user_ids if uid}
    if not ids:
        return {}
    rows = session.scalars(select(Profile).where(Profile.user_id.in_(ids))).all()
    return {row.user_id: row.to_dict() for row in rows}


def author_card(
    user_id: str,
    profile: dict[str, Any] | None,
    fallback: str = FALLBACK_AUTHOR_LABEL,
) -> dict[str, Any]:
    """The ``{user_id, display_name, avatar_url}`` block the API embeds."""
    return {
        "user_id": user_id,
        "display_name": display_name_for(profile, fallback),
        "avatar_url": (profile or {}).get("avatar_url"),
    }


def upsert_profile(engine, user_id: str, **fields: Any) -> Profile:
    """Create or update *user_id*'s profile.

    Only the display fields are writable; ``None`` values are left as-is,
    empty strings clear the field.
    """
    unknown = set(fields) - set(_EDITABLE_FIELDS)
    if unknown:
        raise TypeError(f"Unknown profile fields: {sorted(unknown)}")

    with Session(engine, expire_on_commit=False) as session:
        row = session.get(Profile, user_id)
        if row is None:
            row = Profile(user_id=user_id)
            session.add(row)
        for key, value in fields.items():
            if value is None:
                continue
            setattr(row, key, value.strip() or None)
        session.commit()
        session.refresh(row)
        session.expunge(row)

    logger.info("Profile updated for %s", user_id)
    return row
