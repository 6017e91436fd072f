"""
eventquest.services.token_staging — Twitter OAuth1.0a request-token staging
============================================================================

Between ``/twitter/auth`` and ``/twitter/callback`` we must remember which
user asked for which request token, and its secret.  The pair lives in
``oauth_request_tokens`` so every API worker sees it; rows older than the
TTL are pruned on each stage and by the periodic sweep in the API lifespan.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete

from eventquest.constants import TWITTER_REQUEST_TOKEN_TTL_SECONDS
from eventquest.database.engine import get_session
from eventquest.database.models import OAuthRequestToken
from eventquest.errors import ExpiredAuthError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _cutoff(ttl_seconds: int) -> datetime:
    return datetime.now(UTC) - timedelta(seconds=ttl_seconds)


def stage_request_token(
    engine: Engine,
    *,
    oauth_token: str,
    oauth_token_secret: str,
    user_id: int,
    ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS,
) -> None:
    """Persist a request token and prune stale entries."""
    with get_session(engine) as session:
        session.execute(
            delete(OAuthRequestToken).where(OAuthRequestToken.created_at < _cutoff(ttl_seconds))
        )
        session.merge(OAuthRequestToken(
            oauth_token=oauth_token,
            oauth_token_secret=oauth_token_secret,
            user_id=user_id,
            created_at=datetime.now(UTC),
        ))


def consume_request_token(
    engine: Engine,
    oauth_token: str,
    *,
    ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS,
) -> tuple[str, int]:
    """Pop a staged token, returning ``(oauth_token_secret, user_id)``.

    Raises ``ExpiredAuthError`` if the token was never staged, was already
    used, or has aged out.
    """
    with get_session(engine) as session:
        session.execute(
            delete(OAuthRequestToken).where(OAuthRequestToken.created_at < _cutoff(ttl_seconds))
        )
        row = session.get(OAuthRequestToken, oauth_token)
        if row is None:
            raise ExpiredAuthError("Invalid or expired OAuth request")
        secret, user_id = row.oauth_token_secret, row.user_id
        session.delete(row)
    return secret, user_id


def sweep_expired_request_tokens(
    engine: Engine, *, ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS
) -> int:
    """Delete every staged token older than *ttl_seconds*; return the count."""
    with get_session(engine) as session:
        removed = session.execute(
            delete(OAuthRequestToken).where(OAuthRequestToken.created_at < _cutoff(ttl_seconds))
        ).rowcount
    if removed:
        logger.info("Swept %d expired Twitter request tokens", removed)
    return removed
