"""
tests/test_config.py — YAML config loading, forum directory and profiles
==========================================================================
"""

from __future__ import annotations

import pytest

from agora.config import AgoraConfig, load_config
from agora.constants import display_name_for
from agora.errors import Forbidden, NotFound, ValidationError
from agora.services import forum_service, post_service, profile_service


# ===========================================================================
# config.yaml
# ===========================================================================
class TestLoadConfig:
    def test_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("community_name: Test Club\n", encoding="utf-8")
        cfg = load_config(path)
        assert cfg == AgoraConfig(community_name="Test Club")
        assert cfg.fallback_author_label == "User"
        assert cfg.max_title_length == 300

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "community_name: C\n"
            "fallback_author_label: Member\n"
            "max_title_length: 120\n"
            "max_body_length: 2000\n"
            "api_port: 9000\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert (cfg.fallback_author_label, cfg.max_title_length, cfg.max_body_length, cfg.api_port) == (
            "Member", 120, 2000, 9000,
        )

    def test_env_path(self, tmp_path, monkeypatch):
        path = tmp_path / "agora.yaml"
        path.write_text("community_name: From Env\n", encoding="utf-8")
        monkeypatch.setenv("AGORA_CONFIG", str(path))
        assert load_config().community_name == "From Env"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("api_port: 1\n", encoding="utf-8")
        with pytest.raises(KeyError):
            load_config(path)

    def test_display_name_helper(self):
        assert display_name_for({"display_name": " Ada "}) == "Ada"
        assert display_name_for(None, "Guest") == "Guest"


# ===========================================================================
# Forum directory
# ===========================================================================
class TestForumDirectory:
    def test_admin_creates_and_lists_with_counts(self, db_engine, admin, alice):
        forum = forum_service.create_forum(
            db_engine, admin, name="Help", display_name="Help Desk"
        )
        assert forum.name == "help"
        post_service.create_post(db_engine, forum.id, alice, title="t", body="b")

        [listing] = forum_service.list_forums(db_engine)
        assert listing.forum.id == forum.id
        assert listing.post_count == 1

    def test_member_cannot_create(self, db_engine, alice):
        with pytest.raises(Forbidden):
            forum_service.create_forum(db_engine, alice, name="x", display_name="X")

    def test_duplicate_name(self, db_engine, admin):
        forum_service.create_forum(db_engine, admin, name="dup", display_name="Dup")
        with pytest.raises(ValidationError):
            forum_service.create_forum(db_engine, admin, name="dup", display_name="Dup 2")

    def test_deactivate_hides_forum(self, db_engine, admin, forum):
        forum_service.update_forum(db_engine, admin, forum.id, is_active=False)
        assert forum_service.list_forums(db_engine) == []
        assert len(forum_service.list_forums(db_engine, include_inactive=True)) == 1

    def test_update_unknown(self, db_engine, admin):
        with pytest.raises(NotFound):
            forum_service.update_forum(db_engine, admin, "nope", display_name="x")


# ===========================================================================
# Profile mirror
# ===========================================================================
class TestProfiles:
    def test_upsert_and_partial_update(self, db_engine):
        profile_service.upsert_profile(db_engine, "u1", display_name="Ada", nickname="A")
        profile = profile_service.upsert_profile(db_engine, "u1", nickname="")
        assert profile.display_name == "Ada"
        assert profile.nickname is None
        assert profile_service.get_profile(db_engine, "u1").display_name == "Ada"

    def test_unknown_field(self, db_engine):
        with pytest.raises(TypeError):
            profile_service.upsert_profile(db_engine, "u1", email="a@b.c")

    def test_missing_profile(self, db_engine):
        assert profile_service.get_profile(db_engine, "ghost") is None
