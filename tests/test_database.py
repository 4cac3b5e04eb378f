"""
tests/test_database.py — Engine helpers
=========================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import inspect, select

from agora.database.engine import create_db_engine, get_session, init_db, run_db
from agora.database.models import Forum
from agora.services import forum_service


class TestEngineHelpers:
    def test_create_engine_requires_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            create_db_engine()

    def test_init_db_creates_every_table(self, db_engine):
        init_db(db_engine)
        tables = set(inspect(db_engine).get_table_names())
        assert {
            "forums", "profiles", "posts", "replies", "likes",
            "blog_comments", "announcement_comments",
        } <= tables

    def test_get_session_commits(self, db_engine):
        with get_session(db_engine) as session:
            session.add(Forum(name="a", display_name="A"))
        with get_session(db_engine) as session:
            assert session.scalar(select(Forum.name)) == "a"

    def test_get_session_rolls_back_on_error(self, db_engine):
        with pytest.raises(ValueError):
            with get_session(db_engine) as session:
                session.add(Forum(name="b", display_name="B"))
                session.flush()
                raise ValueError("boom")
        with get_session(db_engine) as session:
            assert session.scalar(select(Forum.name)) is None

    def test_run_db_offloads_sync_call(self, db_engine, forum):
        listings = asyncio.run(run_db(forum_service.list_forums, db_engine))
        assert [item.forum.id for item in listings] == [forum.id]
