"""
tests/test_oauth_state.py — Signed OAuth2 state
================================================
"""

from __future__ import annotations

import time

import jwt
import pytest

from eventquest.errors import ExpiredAuthError, SignatureMismatchError, ValidationError
from eventquest.services.oauth_state import decode_state, encode_state

SECRET = "state-secret-for-tests-" + "z" * 20


class TestOAuthState:
    def test_round_trip(self):
        state = encode_state(42, "discord", secret=SECRET)
        assert decode_state(state, "discord", secret=SECRET) == 42

    def test_other_provider_rejected(self):
        state = encode_state(42, "discord", secret=SECRET)
        with pytest.raises(SignatureMismatchError):
            decode_state(state, "google", secret=SECRET)

    def test_wrong_secret(self):
        state = encode_state(42, "google", secret=SECRET)
        with pytest.raises(SignatureMismatchError):
            decode_state(state, "google", secret="another-secret-" + "q" * 30)

    def test_expired(self):
        state = encode_state(42, "google", secret=SECRET, issued_at=1_000)
        assert decode_state(state, "google", secret=SECRET, now=1_000 + 299) == 42
        with pytest.raises(ExpiredAuthError):
            decode_state(state, "google", secret=SECRET, now=1_000 + 301)

    @pytest.mark.parametrize("state", ["", "not-a-jwt", "a.b.c"])
    def test_malformed(self, state):
        with pytest.raises(ValidationError):
            decode_state(state, "discord", secret=SECRET)

    def test_foreign_algorithm_is_malformed(self):
        state = jwt.encode(
            {"sub": "42", "iat": int(time.time()), "provider": "discord"},
            SECRET,
            algorithm="HS512",
        )
        with pytest.raises(ValidationError):
            decode_state(state, "discord", secret=SECRET)

    def test_not_yet_valid_is_malformed(self):
        now = int(time.time())
        state = jwt.encode(
            {"sub": "42", "iat": now, "nbf": now + 3600, "provider": "discord"},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ValidationError):
            decode_state(state, "discord", secret=SECRET)
