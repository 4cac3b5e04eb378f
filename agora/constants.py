"""
agora.constants — Shared Constants & Helpers
==============================================

Single source of truth for content limits and the author display-name
precedence.  Import from here instead of duplicating in services, the
normalizer and the API layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from agora.errors import ValidationError

# ---------------------------------------------------------------------------
# Content limits
# ---------------------------------------------------------------------------
MAX_TITLE_LENGTH = 300
MAX_BODY_LENGTH = 50_000

# ---------------------------------------------------------------------------
# Author presentation
# ---------------------------------------------------------------------------
FALLBACK_AUTHOR_LABEL = "User"

# Checked in order; the first non-blank value wins.
DISPLAY_NAME_FIELDS: tuple[str, ...] = ("display_name", "first_name", "nickname")

MEDIA_TYPES: frozenset[str] = frozenset({"image", "video"})


def display_name_for(
    profile: Mapping[str, Any] | None,
    fallback: str = FALLBACK_AUTHOR_LABEL,
) -> str:
    """Pick the label shown for an author.

    Precedence: explicit display name → first name → nickname → *fallback*.
    Blank strings are treated as missing.
    """
    if profile:
        for key in DISPLAY_NAME_FIELDS:
            value = profile.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return fallback


def is_blank(text: str | None) -> bool:
    return text is None or not text.strip()


def clean_text(text: str | None, label: str, max_length: int) -> str:
    """Strip *text* and enforce non-blank + ``max_length``.

    Raises :class:`~agora.errors.ValidationError` naming *label*.
    """
    if is_blank(text):
        raise ValidationError(f"{label} cannot be empty")
    text = text.strip()
    if len(text) > max_length:
        raise ValidationError(f"{label} must be at most {max_length} characters")
    return text
