"""
tests/test_like_service.py — Like ledger
==========================================

Toggle idempotence, counter refresh, the unique-key race path, and the
read helpers.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy import insert
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from agora.database.models import Like, LikeTarget, Post, Profile, Reply
from agora.errors import NotFound, ValidationError
from agora.services import like_service, post_service, reply_service


@pytest.fixture
def post(db_engine, forum, alice):
    return post_service.create_post(db_engine, forum.id, alice, title="t", body="b")


# ===========================================================================
# toggle_like
# ===========================================================================
class TestToggleLike:
    def test_like_then_unlike_restores_state(self, db_engine, post, bob):
        first = like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        assert (first.liked, first.like_count) == (True, 1)

        second = like_service.toggle_like(db_engine, bob.id, "post", post.id)
        assert (second.liked, second.like_count) == (False, 0)

    def test_counts_across_members(self, db_engine, post, alice, bob, carol):
        for viewer in (alice, bob, carol):
            result = like_service.toggle_like(db_engine, viewer.id, LikeTarget.POST, post.id)
        assert result.like_count == 3
        assert like_service.count_likes(db_engine, LikeTarget.POST, post.id) == 3

    def test_cached_counter_refreshed(self, db_engine, post, bob):
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        with Session(db_engine) as session:
            assert session.get(Post, post.id).like_count == 1

    def test_reply_like(self, db_engine, post, alice, bob):
        reply = reply_service.create_reply(db_engine, post.id, alice, body="r")
        result = like_service.toggle_like(db_engine, bob.id, LikeTarget.REPLY, reply.id)
        assert result == like_service.LikeResult(liked=True, like_count=1)
        with Session(db_engine) as session:
            assert session.get(Reply, reply.id).like_count == 1
            assert session.get(Post, post.id).like_count == 0

    def test_unknown_target(self, db_engine, bob):
        with pytest.raises(NotFound):
            like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, "nope")

    def test_unknown_target_type(self, db_engine, post, bob):
        with pytest.raises(ValidationError):
            like_service.toggle_like(db_engine, bob.id, "forum", post.id)

    def test_deleted_post_not_likeable(self, db_engine, post, alice, bob):
        post_service.delete_post(db_engine, post.id, alice)
        with pytest.raises(NotFound):
            like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)

    def test_concurrent_insert_resolves_to_liked(self, db_engine, post, bob):
        """The loser of a double-click race sees the winner's row."""
        real_add = Session.add

        def add_after_winner(self, instance, *args, **kwargs):
            if isinstance(instance, Like):
                # The other request commits its row between our DELETE and INSERT.
                with Session(db_engine) as winner:
                    winner.execute(insert(Like).values(
                        user_id=instance.user_id,
                        target_type=instance.target_type,
                        target_id=instance.target_id,
                    ))
                    winner.commit()
            real_add(self, instance, *args, **kwargs)

        with patch.object(Session, "add", add_after_winner):
            result = like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)

        assert result == like_service.LikeResult(liked=True, like_count=1)

    def test_interleaved_toggles_keep_cached_count_current(self, db_engine, post, bob, carol):
        """Carol's whole toggle lands between Bob's ledger write and his refresh."""
        original = like_service.refresh_like_count
        calls = []

        def _carol_slips_in(engine, target_type, target_id):
            calls.append(target_id)
            if len(calls) == 1:
                like_service.toggle_like(engine, carol.id, LikeTarget.POST, post.id)
            original(engine, target_type, target_id)

        with patch.object(like_service, "refresh_like_count", _carol_slips_in):
            result = like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)

        assert result.liked is True
        assert len(calls) == 2
        with Session(db_engine) as session:
            assert session.get(Post, post.id).like_count == 2
        assert post_service.get_post(db_engine, post.id).post.like_count == 2

    def test_counter_refresh_failure_is_swallowed(self, db_engine, post, bob, caplog):
        with patch.object(like_service, "update", side_effect=OperationalError("UPDATE", {}, Exception("down"))):
            result = like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        assert result.liked is True
        assert result.like_count == 1
        assert "Could not refresh like_count" in caplog.text


# ===========================================================================
# Reads
# ===========================================================================
class TestLikeReads:
    def test_has_liked(self, db_engine, post, bob):
        assert like_service.has_liked(db_engine, bob.id, LikeTarget.POST, post.id) is False
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)
        assert like_service.has_liked(db_engine, bob.id, LikeTarget.POST, post.id) is True
        assert like_service.has_liked(db_engine, None, LikeTarget.POST, post.id) is False

    def test_liked_target_ids(self, db_engine, post, alice, bob):
        r1 = reply_service.create_reply(db_engine, post.id, alice, body="1")
        r2 = reply_service.create_reply(db_engine, post.id, alice, body="2")
        like_service.toggle_like(db_engine, bob.id, LikeTarget.REPLY, r2.id)
        assert like_service.liked_target_ids(
            db_engine, bob.id, LikeTarget.REPLY, [r1.id, r2.id]
        ) == {r2.id}
        assert like_service.liked_target_ids(db_engine, bob.id, LikeTarget.REPLY, []) == set()

    def test_list_likers_uses_profiles_and_fallback(self, db_engine, post, alice, bob):
        with Session(db_engine) as session:
            session.add(Profile(user_id=alice.id, display_name="Alice A", avatar_url="a.png"))
            session.commit()
        like_service.toggle_like(db_engine, alice.id, LikeTarget.POST, post.id)
        like_service.toggle_like(db_engine, bob.id, LikeTarget.POST, post.id)

        likers = like_service.list_likers(
            db_engine, LikeTarget.POST, post.id, fallback_label="Member"
        )
        by_id = {card["user_id"]: card for card in likers}
        assert by_id[alice.id] == {"user_id": "alice", "display_name": "Alice A", "avatar_url": "a.png"}
        assert by_id[bob.id]["display_name"] == "Member"
        assert likers[0]["user_id"] == bob.id
