"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of eventquest.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.ext.compiler import compiles  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from eventquest.config import EventQuestConfig  # noqa: E402
from eventquest.database.models import Base, LinkedIdentity, User  # noqa: E402


# ---------------------------------------------------------------------------
# JSONB columns are stored as TEXT on SQLite.
# ---------------------------------------------------------------------------
@compiles(PG_JSONB, "sqlite")
def _compile_jsonb_as_text(type_, compiler, **kw):
    return "TEXT"


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all EventQuest tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` behind ``run_db``).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def app_config() -> EventQuestConfig:
    return EventQuestConfig(
        app_name="EventQuest",
        frontend_url="http://frontend.test",
        require_verified_organizers=False,
    )


@pytest.fixture
def client(db_engine, app_config):
    """FastAPI TestClient wired to the in-memory engine and test config.

    The lifespan (and its background sweep) is not started.
    """
    from fastapi.testclient import TestClient

    from eventquest.api import main as main_mod

    main_mod.app.dependency_overrides[main_mod.get_engine] = lambda: db_engine
    main_mod.app.dependency_overrides[main_mod.get_config] = lambda: app_config
    yield TestClient(main_mod.app, raise_server_exceptions=False)
    main_mod.app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factories (importable as ``from conftest import ...``)
# ---------------------------------------------------------------------------
def make_user(
    engine: Engine,
    address: str = "0x" + "a" * 40,
    *,
    verified: bool = True,
) -> int:
    """Insert a user and return its id."""
    with Session(engine) as session:
        user = User(address=address.lower(), nonce="0" * 32, verified=verified)
        session.add(user)
        session.commit()
        return user.id


def link_identity(
    engine: Engine, user_id: int, provider: str, username: str = "handle"
) -> None:
    with Session(engine) as session:
        session.add(LinkedIdentity(
            user_id=user_id,
            provider=provider,
            provider_user_id=f"{provider}-{user_id}",
            username=username,
        ))
        session.commit()


def future(days: int = 30) -> datetime:
    return datetime.now(UTC) + timedelta(days=days)


def make_session_token(user_id: int, address: str = "0x" + "a" * 40) -> str:
    from eventquest.api.deps import issue_session_token

    return issue_session_token(user_id, address)
