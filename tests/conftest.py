"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of agora.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine, event  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from agora.config import AgoraConfig  # noqa: E402
from agora.database.models import Base, Forum  # noqa: E402
from agora.engine.identity import Viewer  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Agora tables.

    Uses StaticPool so every session (and every TestClient worker thread)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def fk_engine(tmp_path) -> Engine:
    """A file-backed SQLite engine with foreign keys enforced.

    Each session gets its own connection, so one transaction can commit
    while another is still open, as on PostgreSQL.
    """
    engine = create_engine(f"sqlite:///{tmp_path / 'agora.db'}", echo=False)

    @event.listens_for(engine, "connect")
    def _enforce_foreign_keys(dbapi_connection, _record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session for direct assertions against the tables."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def forum(db_engine: Engine) -> Forum:
    """An active forum to file posts under."""
    with Session(db_engine, expire_on_commit=False) as session:
        f = Forum(name="general", display_name="General")
        session.add(f)
        session.commit()
        return f


@pytest.fixture
def test_config() -> AgoraConfig:
    return AgoraConfig(community_name="Agora Test", fallback_author_label="Member")


# ---------------------------------------------------------------------------
# Viewers
# ---------------------------------------------------------------------------
@pytest.fixture
def alice() -> Viewer:
    return Viewer(id="alice")


@pytest.fixture
def bob() -> Viewer:
    return Viewer(id="bob")


@pytest.fixture
def carol() -> Viewer:
    return Viewer(id="carol")


@pytest.fixture
def admin() -> Viewer:
    return Viewer(id="root", is_admin=True)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
def make_token(sub: str, *, is_admin: bool = False, can_post: bool = True) -> str:
    """Mint a bearer token the way the identity provider does."""
    import jwt

    from agora.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": sub, "is_admin": is_admin, "can_post": can_post},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


def auth(sub: str, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, **claims)}"}


@pytest.fixture
def client(db_engine: Engine, test_config: AgoraConfig):
    """A TestClient wired to the in-memory engine and the test config."""
    from fastapi.testclient import TestClient

    from agora.api.deps import get_config, get_engine
    from agora.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: test_config
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
