"""
eventquest.services.oauth_state — Signed OAuth2 ``state`` parameter
====================================================================

The ``state`` round-tripped through Discord and Google is a short HS256 JWT
carrying ``{sub: user_id, iat: issued_at, provider}``.  Nothing is stored
server-side: the signature binds the user, the ``provider`` claim stops a
Discord state from being replayed against Google, and ``iat`` bounds its
lifetime.
"""

from __future__ import annotations

import logging
import time

import jwt
from jwt.exceptions import InvalidSignatureError, InvalidTokenError

from eventquest.constants import OAUTH_STATE_TTL_SECONDS
from eventquest.errors import ExpiredAuthError, SignatureMismatchError, ValidationError

logger = logging.getLogger(__name__)

STATE_ALGORITHM = "HS256"


def encode_state(
    user_id: int,
    provider: str,
    *,
    secret: str,
    issued_at: int | None = None,
) -> str:
    payload = {
        "sub": str(user_id),
        "iat": int(issued_at if issued_at is not None else time.time()),
        "provider": str(provider),
    }
    return jwt.encode(payload, secret, algorithm=STATE_ALGORITHM)


def decode_state(
    state: str,
    provider: str,
    *,
    secret: str,
    max_age: int = OAUTH_STATE_TTL_SECONDS,
    now: float | None = None,
) -> int:
    """Verify *state* and return the user id it was issued for.

    Raises
    ------
    ValidationError
        The string is not a decodable token or lacks its claims.
    SignatureMismatchError
        The signature is wrong or the token was issued for another provider.
    ExpiredAuthError
        More than *max_age* seconds passed since issue.
    """
    if not state:
        raise ValidationError("Missing state parameter")
    try:
        # Age is checked below against *now* so tests can pin the clock.
        payload = jwt.decode(
            state,
            secret,
            algorithms=[STATE_ALGORITHM],
            options={"verify_iat": False, "verify_exp": False},
        )
    except InvalidSignatureError:
        logger.warning("Rejected OAuth state for %s: bad signature", provider)
        raise SignatureMismatchError("Invalid state signature") from None
    except InvalidTokenError:
        # wrong algorithm, future nbf, undecodable
        raise ValidationError("Malformed state parameter") from None

    try:
        user_id = int(payload["sub"])
        issued_at = int(payload["iat"])
        claimed_provider = payload["provider"]
    except (KeyError, TypeError, ValueError):
        raise ValidationError("Malformed state parameter") from None

    if claimed_provider != str(provider):
        logger.warning(
            "Rejected OAuth state: issued for %s, presented to %s",
            claimed_provider, provider,
        )
        raise SignatureMismatchError("State was issued for a different provider")

    current = time.time() if now is None else now
    if current - issued_at > max_age:
        raise ExpiredAuthError("Authorization expired")
    return user_id
