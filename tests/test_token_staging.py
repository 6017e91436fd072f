"""
tests/test_token_staging.py — Twitter request-token staging
============================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import make_user
from sqlalchemy.orm import Session

from eventquest.database.models import OAuthRequestToken
from eventquest.errors import ExpiredAuthError
from eventquest.services import token_staging


@pytest.fixture
def user_id(db_engine) -> int:
    return make_user(db_engine)


def _insert_aged(engine, token: str, user_id: int, minutes: int) -> None:
    with Session(engine) as session:
        session.add(OAuthRequestToken(
            oauth_token=token,
            oauth_token_secret="old-secret",
            user_id=user_id,
            created_at=datetime.now(UTC) - timedelta(minutes=minutes),
        ))
        session.commit()


class TestTokenStaging:
    def test_stage_then_consume(self, db_engine, user_id):
        token_staging.stage_request_token(
            db_engine, oauth_token="t1", oauth_token_secret="s1", user_id=user_id
        )
        assert token_staging.consume_request_token(db_engine, "t1") == ("s1", user_id)

    def test_consumed_once(self, db_engine, user_id):
        token_staging.stage_request_token(
            db_engine, oauth_token="t1", oauth_token_secret="s1", user_id=user_id
        )
        token_staging.consume_request_token(db_engine, "t1")
        with pytest.raises(ExpiredAuthError):
            token_staging.consume_request_token(db_engine, "t1")

    def test_aged_out_token_rejected(self, db_engine, user_id):
        _insert_aged(db_engine, "stale", user_id, minutes=45)
        with pytest.raises(ExpiredAuthError):
            token_staging.consume_request_token(db_engine, "stale")

    def test_sweep(self, db_engine, user_id):
        _insert_aged(db_engine, "stale", user_id, minutes=45)
        token_staging.stage_request_token(
            db_engine, oauth_token="fresh", oauth_token_secret="s", user_id=user_id
        )
        assert token_staging.sweep_expired_request_tokens(db_engine) == 0
        _insert_aged(db_engine, "stale2", user_id, minutes=90)
        assert token_staging.sweep_expired_request_tokens(db_engine) == 1
        with Session(db_engine) as session:
            assert session.get(OAuthRequestToken, "fresh") is not None

    def test_restage_replaces_secret(self, db_engine, user_id):
        for secret in ("a", "b"):
            token_staging.stage_request_token(
                db_engine, oauth_token="t", oauth_token_secret=secret, user_id=user_id
            )
        assert token_staging.consume_request_token(db_engine, "t") == ("b", user_id)
