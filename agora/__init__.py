"""
Agora — Threaded Discussion Engine for Membership Communities
===============================================================
Forum posts, two-level reply threads, like toggles and moderation
(lock / pin / accepted answer), plus a normalizer that renders blog and
announcement comments through the same comment-tree shape.

Package layout::

    agora/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared limits + display-name precedence
    ├── errors.py          # Typed failures mapped to HTTP statuses
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── identity.py    # Viewer (external identity context)
    │   ├── moderation.py  # OPEN/LOCKED state machine + gates
    │   └── normalizer.py  # Source records → CommentNode trees
    ├── services/
    │   ├── forum_service.py       # Forum directory
    │   ├── profile_service.py     # Local profile mirror
    │   ├── post_service.py        # Post store
    │   ├── reply_service.py       # Reply store (depth-capped)
    │   ├── like_service.py        # Like ledger
    │   ├── moderation_service.py  # Accepted-answer marking
    │   └── comment_service.py     # Blog / announcement comments
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT → Viewer, engine/session/config deps
        ├── auth.py        # /auth/me
        ├── serializers.py # ORM rows → JSON dicts
        └── routes/        # Forum, post, reply, thread and member endpoints
"""

__version__ = "0.1.0"
