"""
tests/test_jwt_startup.py — Signing secret and session tokens
==============================================================
``eventquest.api.deps`` validates JWT_SECRET when it is imported.  The same
secret signs login session tokens and the Discord/Google ``state``, so a
rotated secret invalidates both.
"""

from __future__ import annotations

import importlib
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException

import eventquest.api.deps as deps
from eventquest.errors import SignatureMismatchError
from eventquest.services.oauth_state import decode_state, encode_state

STRONG = "eventquest-rotated-" + "k" * 40


@pytest.fixture
def reload_deps(monkeypatch):
    """Reload deps under a patched JWT_SECRET; restore the module afterwards."""

    def _reload(value: str | None) -> str:
        if value is None:
            monkeypatch.delenv("JWT_SECRET", raising=False)
        else:
            monkeypatch.setenv("JWT_SECRET", value)
        return importlib.reload(deps).JWT_SECRET

    yield _reload
    monkeypatch.undo()
    importlib.reload(deps)


class TestSecretValidation:
    @pytest.mark.parametrize(
        ("value", "message"),
        [
            (None, "not set"),
            ("", "not set"),
            ("eventquest-dev-secret-change-me", "known weak default"),
            ("change-me", "known weak default"),
            ("x" * 31, "too short"),
        ],
    )
    def test_rejected(self, reload_deps, value, message):
        with pytest.raises(RuntimeError, match=message):
            reload_deps(value)

    def test_exactly_minimum_length(self, reload_deps):
        assert reload_deps("y" * 32) == "y" * 32


class TestSessionTokens:
    def test_token_identifies_user(self):
        token = deps.issue_session_token(17, "0x" + "a" * 40)
        assert deps.get_current_user_id(f"Bearer {token}") == 17

        claims = jwt.decode(token, deps.JWT_SECRET, algorithms=[deps.JWT_ALGORITHM])
        assert claims["address"] == "0x" + "a" * 40
        lifetime = claims["exp"] - datetime.now(UTC).timestamp()
        assert timedelta(days=6, hours=23).total_seconds() < lifetime
        assert lifetime <= timedelta(days=7).total_seconds()

    def test_expired_token_rejected(self):
        token = jwt.encode(
            {"sub": "17", "exp": datetime.now(UTC) - timedelta(seconds=1)},
            deps.JWT_SECRET,
            algorithm=deps.JWT_ALGORITHM,
        )
        with pytest.raises(HTTPException) as excinfo:
            deps.get_current_user_id(f"Bearer {token}")
        assert excinfo.value.status_code == 401

    def test_missing_bearer_prefix(self):
        with pytest.raises(HTTPException, match="Missing token"):
            deps.get_current_user_id("Token abc")

    def test_rotation_invalidates_tokens_and_state(self, reload_deps):
        old_token = deps.issue_session_token(5, "0x" + "b" * 40)
        old_state = encode_state(5, "google", secret=deps.JWT_SECRET)

        reload_deps(STRONG)

        with pytest.raises(HTTPException, match="Invalid token"):
            deps.get_current_user_id(f"Bearer {old_token}")
        with pytest.raises(SignatureMismatchError):
            decode_state(old_state, "google", secret=deps.JWT_SECRET)
