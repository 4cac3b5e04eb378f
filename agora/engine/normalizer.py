"""
agora.engine.normalizer — One comment tree for every comment source
=====================================================================

Forum replies, blog comments and announcement comments are stored in
three tables whose columns disagree (``user_id`` vs ``author_id``,
``profile`` vs ``user`` vs ``author`` for the joined author record,
``likes_count`` only on forum replies).  The UI renders all of them with
the same component, so every source is mapped into :class:`CommentNode`
here before it leaves the service layer.

The tree is always two levels deep:

* records whose parent is missing, unknown, or part of a parent cycle
  become top-level nodes;
* everything else hangs directly under its top-level ancestor, however
  deep the source nesting was (``parent_id`` chains and nested
  ``replies`` lists are both flattened).

Both levels are ordered oldest first, with ``id`` breaking ties.  The
functions in this module are pure: same input, same output, no I/O.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from agora.constants import FALLBACK_AUTHOR_LABEL, display_name_for

__all__ = [
    "SourceKind",
    "CommentNode",
    "normalize",
    "resolve_thread_parent",
]

_EPOCH = datetime.min.replace(tzinfo=UTC)


class SourceKind(enum.StrEnum):
    FORUM_REPLY = "forum_reply"
    BLOG_COMMENT = "blog_comment"
    ANNOUNCEMENT_COMMENT = "announcement_comment"


# ---------------------------------------------------------------------------
# Output shape
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class CommentNode:
    """A comment as the UI sees it.  ``children`` is empty below level one."""

    id: str
    author_id: str | None
    author_display: str
    avatar_url: str | None
    body: str
    created_at: datetime
    like_count: int = 0
    user_liked: bool = False
    children: list[CommentNode] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "author_display": self.author_display,
            "avatar_url": self.avatar_url,
            "body": self.body,
            "created_at": self.created_at.isoformat(),
            "like_count": self.like_count,
            "user_liked": self.user_liked,
            "children": [child.to_dict() for child in self.children],
        }


# ---------------------------------------------------------------------------
# Per-source field mapping
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class _Fields:
    id: str
    parent_id: str | None
    author_id: str | None
    author: Mapping[str, Any] | None
    body: str
    created_at: datetime
    like_count: int
    user_liked: bool


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        dt = datetime.fromisoformat(value)
    else:
        return _EPOCH
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _forum_reply(rec: Mapping[str, Any], parent: str | None) -> _Fields:
    return _Fields(
        id=str(rec["id"]),
        parent_id=_opt_str(rec.get("parent_id", rec.get("parent_reply_id", parent))),
        author_id=_opt_str(rec.get("user_id", rec.get("author_id"))),
        author=rec.get("profile"),
        body=rec.get("content") or rec.get("body") or "",
        created_at=_as_datetime(rec.get("created_at")),
        like_count=int(rec.get("likes_count", rec.get("like_count")) or 0),
        user_liked=bool(rec.get("user_liked", False)),
    )


def _blog_comment(rec: Mapping[str, Any], parent: str | None) -> _Fields:
    return _Fields(
        id=str(rec["id"]),
        parent_id=_opt_str(rec.get("parent_id", parent)),
        author_id=_opt_str(rec.get("user_id")),
        author=rec.get("user"),
        body=rec.get("content") or "",
        created_at=_as_datetime(rec.get("created_at")),
        like_count=0,
        user_liked=False,
    )


def _announcement_comment(rec: Mapping[str, Any], parent: str | None) -> _Fields:
    return _Fields(
        id=str(rec["id"]),
        parent_id=_opt_str(rec.get("parent_id", parent)),
        author_id=_opt_str(rec.get("author_id")),
        author=rec.get("author"),
        body=rec.get("content") or "",
        created_at=_as_datetime(rec.get("created_at")),
        like_count=0,
        user_liked=False,
    )


_MAPPERS: dict[SourceKind, Callable[[Mapping[str, Any], str | None], _Fields]] = {
    SourceKind.FORUM_REPLY: _forum_reply,
    SourceKind.BLOG_COMMENT: _blog_comment,
    SourceKind.ANNOUNCEMENT_COMMENT: _announcement_comment,
}


def _walk(
    records: Iterable[Mapping[str, Any]], parent: str | None = None
) -> Iterator[tuple[Mapping[str, Any], str | None]]:
    """Yield ``(record, enclosing_id)`` pairs, descending into ``replies``."""
    for rec in records:
        yield rec, parent
        nested = rec.get("replies")
        if nested:
            yield from _walk(nested, _opt_str(rec.get("id")))


# ---------------------------------------------------------------------------
# Tree shaping
# ---------------------------------------------------------------------------
def resolve_thread_parent(
    parent_id: str | None,
    parent_of: Mapping[str, str | None],
) -> str | None:
    """Return the top-level ancestor a new comment should attach to.

    *parent_of* maps every known comment id to its own parent id.  An
    unknown or absent *parent_id* yields ``None`` (post at top level).  A
    chain that loops back on itself resolves to the smallest id in the
    loop.
    """
    if parent_id is None or parent_id not in parent_of:
        return None

    chain = [parent_id]
    position = {parent_id: 0}
    current = parent_id
    while True:
        nxt = parent_of.get(current)
        if nxt is None or nxt not in parent_of:
            return current
        if nxt in position:
            return min(chain[position[nxt]:])
        position[nxt] = len(chain)
        chain.append(nxt)
        current = nxt


def _sort_key(node: CommentNode) -> tuple[datetime, str]:
    return node.created_at, node.id


def normalize(
    records: Iterable[Mapping[str, Any]],
    source_kind: SourceKind | str,
    *,
    fallback_label: str = FALLBACK_AUTHOR_LABEL,
) -> list[CommentNode]:
    """Map raw *records* of one *source_kind* into a two-level tree.

    Records without an ``id`` are skipped; a repeated id keeps its first
    occurrence.
    """
    mapper = _MAPPERS[SourceKind(source_kind)]

    fields: dict[str, _Fields] = {}
    for rec, enclosing in _walk(records):
        if rec.get("id") is None:
            continue
        f = mapper(rec, enclosing)
        fields.setdefault(f.id, f)

    parent_of = {f.id: f.parent_id for f in fields.values()}
    nodes = {
        f.id: CommentNode(
            id=f.id,
            author_id=f.author_id,
            author_display=display_name_for(f.author, fallback_label),
            avatar_url=(f.author or {}).get("avatar_url"),
            body=f.body,
            created_at=f.created_at,
            like_count=f.like_count,
            user_liked=f.user_liked,
        )
        for f in fields.values()
    }

    roots: list[CommentNode] = []
    for comment_id, node in nodes.items():
        anchor = resolve_thread_parent(parent_of[comment_id], parent_of)
        if anchor is None or anchor == comment_id:
            roots.append(node)
        else:
            nodes[anchor].children.append(node)

    roots.sort(key=_sort_key)
    for root in roots:
        root.children.sort(key=_sort_key)
    return roots
