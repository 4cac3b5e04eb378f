"""
agora.config — YAML Configuration Loader
==========================================

**Why this file exists:**
Secrets and connection strings (``DATABASE_URL``, ``JWT_SECRET``) come from
the environment.  Everything softer — community identity, the fallback
author label shown for members without a profile, content length limits —
lives in ``config.yaml`` so it can be tuned without a redeploy.

Usage::

    from agora.config import load_config

    cfg = load_config()              # reads $AGORA_CONFIG or ./config.yaml
    print(cfg.community_name)        # "Agora Dev"
    print(cfg.fallback_author_label) # "User"
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from agora.constants import (
    FALLBACK_AUTHOR_LABEL,
    MAX_BODY_LENGTH,
    MAX_TITLE_LENGTH,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class AgoraConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Presentation
    fallback_author_label: str = FALLBACK_AUTHOR_LABEL

    # Content limits
    max_title_length: int = MAX_TITLE_LENGTH
    max_body_length: int = MAX_BODY_LENGTH

    # API
    api_port: int = 8000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def default_config_path() -> Path:
    """``$AGORA_CONFIG`` when set, otherwise ``./config.yaml``."""
    return Path(os.getenv("AGORA_CONFIG") or "config.yaml")


def load_config(path: str | Path | None = None) -> AgoraConfig:
    """Read *path* and return an :class:`AgoraConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to :func:`default_config_path`.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return AgoraConfig(
        community_name=raw["community_name"],
        fallback_author_label=(
            raw.get("fallback_author_label") or FALLBACK_AUTHOR_LABEL
        ),
        max_title_length=int(raw.get("max_title_length", MAX_TITLE_LENGTH)),
        max_body_length=int(raw.get("max_body_length", MAX_BODY_LENGTH)),
        api_port=int(raw.get("api_port", 8000)),
    )
