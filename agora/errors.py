"""
agora.errors — Typed Failures for the Discussion Engine
=========================================================

Services raise these; the HTTP boundary (:mod:`agora.api.main`) maps each
one to its ``status_code`` and a ``{"detail", "code"}`` body.  Nothing in
the service layer imports FastAPI.
"""

from __future__ import annotations


class ThreadError(Exception):
    """Base class for every failure the engine reports to callers."""

    status_code = 400
    code = "thread_error"
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ThreadError):
    """Malformed input (empty title/body, over-long content)."""

    status_code = 400
    code = "validation_error"
    default_message = "Invalid input"


class Forbidden(ThreadError):
    """The caller failed an authorization gate."""

    status_code = 403
    code = "forbidden"
    default_message = "You are not allowed to do that"


class NotFound(ThreadError):
    """Missing entity, or a cross-reference that does not line up."""

    status_code = 404
    code = "not_found"
    default_message = "Not found"


class PostLocked(ThreadError):
    """A reply was attempted against a locked post."""

    status_code = 403
    code = "post_locked"
    default_message = "This post is locked"


class InvalidNesting(ThreadError):
    """A reply targeted a reply that already has a parent."""

    status_code = 400
    code = "invalid_nesting"
    default_message = "Replies can only be nested one level deep"
