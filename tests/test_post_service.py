"""
tests/test_post_service.py — Post store
=========================================

Creation gates and validation, view counting, author edits, soft delete
with its cascade, pinning and the listing queries.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from agora.database.models import Forum, Like, LikeTarget, Post, Reply
from agora.engine.identity import Viewer
from agora.errors import Forbidden, NotFound, ValidationError
from agora.services import like_service, moderation_service, post_service, reply_service


# ===========================================================================
# create_post
# ===========================================================================
class TestCreatePost:
    def test_create(self, db_engine, forum, alice):
        post = post_service.create_post(
            db_engine, forum.id, alice, title="  Hello  ", body="World"
        )
        assert post.title == "Hello"
        assert post.author_id == "alice"
        assert post.is_locked is False
        assert post.is_pinned is False
        assert post.accepted_reply_id is None
        assert post.view_count == 0

    def test_viewer_without_post_rights(self, db_engine, forum):
        with pytest.raises(Forbidden):
            post_service.create_post(
                db_engine, forum.id, Viewer(id="lurker", can_post=False), title="t", body="b"
            )

    def test_unknown_forum(self, db_engine, alice):
        with pytest.raises(NotFound):
            post_service.create_post(db_engine, "nope", alice, title="t", body="b")

    def test_inactive_forum(self, db_engine, forum, alice):
        with Session(db_engine) as session:
            session.get(Forum, forum.id).is_active = False
            session.commit()
        with pytest.raises(NotFound):
            post_service.create_post(db_engine, forum.id, alice, title="t", body="b")

    @pytest.mark.parametrize("title, body", [("", "b"), ("t", "  "), ("   ", "b")])
    def test_blank_fields(self, db_engine, forum, alice, title, body):
        with pytest.raises(ValidationError):
            post_service.create_post(db_engine, forum.id, alice, title=title, body=body)

    def test_title_too_long(self, db_engine, forum, alice):
        with pytest.raises(ValidationError):
            post_service.create_post(
                db_engine, forum.id, alice, title="x" * 301, body="b"
            )

    def test_configured_title_limit(self, db_engine, forum, alice):
        with pytest.raises(ValidationError):
            post_service.create_post(
                db_engine, forum.id, alice, title="x" * 11, body="b", max_title_length=10
            )

    def test_media(self, db_engine, forum, alice):
        post = post_service.create_post(
            db_engine, forum.id, alice, title="t", body="b",
            media_url="https://cdn/x.png", media_type="image",
        )
        assert post.media_type == "image"
        with pytest.raises(ValidationError):
            post_service.create_post(
                db_engine, forum.id, alice, title="t", body="b",
                media_url="https://cdn/x.gif", media_type="gif",
            )


# ===========================================================================
# get_post
# ===========================================================================
class TestGetPost:
    def test_view_count_increments(self, db_engine, forum, alice):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        assert post_service.get_post(db_engine, post.id).post.view_count == 1
        assert post_service.get_post(db_engine, post.id).post.view_count == 2

    def test_user_liked(self, db_engine, forum, alice, bob):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        assert post_service.get_post(db_engine, post.id, bob.id).user_liked is True
        assert post_service.get_post(db_engine, post.id, alice.id).user_liked is False
        assert post_service.get_post(db_engine, post.id).user_liked is False

    def test_view_count_failure_does_not_fail_read(self, db_engine, forum, alice, caplog):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        with patch.object(post_service, "update", side_effect=OperationalError("UPDATE", {}, Exception("down"))):
            detail = post_service.get_post(db_engine, post.id)
        assert detail.post.id == post.id
        assert detail.post.view_count == 0
        assert "Could not count view" in caplog.text

    def test_missing(self, db_engine):
        with pytest.raises(NotFound):
            post_service.get_post(db_engine, "nope")


# ===========================================================================
# update_post
# ===========================================================================
class TestUpdatePost:
    def test_author_updates(self, db_engine, forum, alice):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        updated = post_service.update_post(db_engine, post.id, alice, title="T2")
        assert (updated.title, updated.body) == ("T2", "b")

    def test_other_member_forbidden(self, db_engine, forum, alice, bob):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        with pytest.raises(Forbidden):
            post_service.update_post(db_engine, post.id, bob, body="hijack")

    def test_nothing_to_update(self, db_engine, forum, alice):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        with pytest.raises(ValidationError):
            post_service.update_post(db_engine, post.id, alice)


# ===========================================================================
# delete_post
# ===========================================================================
class TestDeletePost:
    def test_cascade(self, db_engine, forum, alice, bob, carol):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        r1 = reply_service.create_reply(db_engine, post.id, bob, body="1")
        c1 = reply_service.create_reply(db_engine, post.id, carol, body="1a", parent_reply_id=r1.id)
        moderation_service.mark_answer(db_engine, post.id, r1.id, alice)
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        like_service.toggle_like(db_engine, alice.id, LikeTarget.REPLY, c1.id)

        other = post_service.create_post(db_engine, forum.id, bob, title="o", body="o")
        like_service.toggle_like(db_engine, alice.id, LikeTarget.POST, other.id)

        post_service.delete_post(db_engine, post.id, alice)

        with Session(db_engine) as session:
            row = session.get(Post, post.id)
            assert row.deleted_at is not None
            assert row.accepted_reply_id is None
            assert session.scalars(select(Reply)).all() == []
            assert session.scalars(select(Like.target_id)).all() == [other.id]

        with pytest.raises(NotFound):
            post_service.get_post(db_engine, post.id)

    def test_admin_may_delete(self, db_engine, forum, alice, admin):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        post_service.delete_post(db_engine, post.id, admin)
        with pytest.raises(NotFound):
            post_service.get_post(db_engine, post.id)

    def test_stranger_forbidden(self, db_engine, forum, alice, bob):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        with pytest.raises(Forbidden):
            post_service.delete_post(db_engine, post.id, bob)

    def test_delete_twice(self, db_engine, forum, alice):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        post_service.delete_post(db_engine, post.id, alice)
        with pytest.raises(NotFound):
            post_service.delete_post(db_engine, post.id, alice)


# ===========================================================================
# Pinning + listings
# ===========================================================================
class TestPinAndListings:
    def test_pin_admin_only(self, db_engine, forum, alice, admin):
        post = post_service.create_post(db_engine, forum.id, alice, title="t", body="b")
        with pytest.raises(Forbidden):
            post_service.set_pinned(db_engine, post.id, alice, True)
        assert post_service.set_pinned(db_engine, post.id, admin, True).is_pinned is True

    def test_forum_listing_pinned_then_newest(self, db_engine, forum, alice, admin):
        old = post_service.create_post(db_engine, forum.id, alice, title="old", body="b")
        mid = post_service.create_post(db_engine, forum.id, alice, title="mid", body="b")
        new = post_service.create_post(db_engine, forum.id, alice, title="new", body="b")
        post_service.set_pinned(db_engine, old.id, admin, True)

        listing = post_service.list_forum_posts(db_engine, forum.id)
        assert [p.id for p in listing] == [old.id, new.id, mid.id]

    def test_forum_listing_unknown_forum(self, db_engine):
        with pytest.raises(NotFound):
            post_service.list_forum_posts(db_engine, "nope")

    def test_user_and_liked_posts(self, db_engine, forum, alice, bob):
        p1 = post_service.create_post(db_engine, forum.id, alice, title="1", body="b")
        p2 = post_service.create_post(db_engine, forum.id, alice, title="2", body="b")
        post_service.create_post(db_engine, forum.id, bob, title="3", body="b")
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, p1.id)

        assert [p.id for p in post_service.list_user_posts(db_engine, alice.id)] == [p2.id, p1.id]
        assert [p.id for p in post_service.list_liked_posts(db_engine, bob.id)] == [p1.id]
