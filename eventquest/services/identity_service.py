"""
eventquest.services.identity_service — Identity Linker
=======================================================

Attaches external accounts to a wallet-anchored user.

* Wallet login creates the user, or rotates its nonce.
* Twitter (OAuth1.0a), Discord and Google (OAuth2) and Telegram (login
  widget hash) each produce one :class:`LinkedIdentity` row per
  (user, provider); relinking replaces the previous row's fields.
* Unlinking deletes the row.  Completed ledger rows are never touched.

The ``link_*`` handshakes that talk to a provider are ``async`` and push
their DB work through :func:`~eventquest.database.engine.run_db`.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from eventquest.constants import (
    OAUTH_STATE_TTL_SECONDS,
    TELEGRAM_AUTH_MAX_AGE_SECONDS,
    TWITTER_REQUEST_TOKEN_TTL_SECONDS,
)
from eventquest.database.engine import get_session, run_db
from eventquest.database.models import LinkedIdentity, Provider, User
from eventquest.errors import (
    ExpiredAuthError,
    NotFoundError,
    SignatureMismatchError,
    ValidationError,
)
from eventquest.services import token_staging
from eventquest.services.oauth_state import decode_state
from eventquest.services.providers import ProviderAccount
from eventquest.services.wallet import normalize_address, recover_wallet_address

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from eventquest.services.providers import (
        DiscordOAuthClient,
        GoogleOAuthClient,
        TwitterOAuthClient,
    )

logger = logging.getLogger(__name__)


def _new_nonce() -> str:
    return secrets.token_hex(16)


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------
def link_wallet(
    engine: Engine,
    *,
    address: str,
    message: str,
    signature: str,
    verifier: Callable[[str, str], str] = recover_wallet_address,
) -> User:
    """Verify a signed login message and return the (possibly new) user.

    *verifier* recovers the signer address from ``(message, signature)``.
    """
    if not address or not message or not signature:
        raise ValidationError("Missing parameters")
    address = normalize_address(address)

    recovered = normalize_address(verifier(message, signature))
    if recovered != address:
        logger.warning("Wallet login rejected for %s: signer mismatch", address)
        raise SignatureMismatchError("Invalid signature: address mismatch")

    with get_session(engine) as session:
        user = session.scalar(select(User).where(User.address == address))
        if user is None:
            user = User(address=address, nonce=_new_nonce(), total_points=0)
            session.add(user)
            logger.info("New user registered for wallet %s", address)
        else:
            user.nonce = _new_nonce()
            user.last_login = datetime.now(UTC)
        session.flush()
        session.refresh(user)
    return user


# ---------------------------------------------------------------------------
# Shared persistence
# ---------------------------------------------------------------------------
def store_identity(engine: Engine, user_id: int, account: ProviderAccount) -> LinkedIdentity:
    """Insert or replace the user's identity for ``account.provider``.

    A Google link also copies the account email onto the user.
    """
    provider = account.provider.value
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        identity = session.scalar(
            select(LinkedIdentity).where(
                LinkedIdentity.user_id == user_id,
                LinkedIdentity.provider == provider,
            )
        )
        if identity is None:
            identity = LinkedIdentity(user_id=user_id, provider=provider)
            session.add(identity)

        identity.provider_user_id = account.provider_user_id
        identity.username = account.username
        identity.access_token = account.access_token
        identity.refresh_token = account.refresh_token
        identity.token_secret = account.token_secret
        identity.profile = account.profile or None
        identity.linked_at = datetime.now(UTC)

        if account.provider == Provider.GOOGLE and account.email:
            user.email = account.email

        session.flush()
        session.refresh(identity)

    logger.info(
        "User %d linked %s account %s", user_id, provider, account.username or "?"
    )
    return identity


# ---------------------------------------------------------------------------
# Twitter (OAuth1.0a)
# ---------------------------------------------------------------------------
async def begin_twitter_link(
    engine: Engine,
    *,
    user_id: int,
    callback_url: str,
    client: TwitterOAuthClient,
    ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS,
) -> str:
    """Fetch a request token, stage it for *user_id* and return the auth URL."""
    request_token = await client.fetch_request_token(callback_url)
    await run_db(
        token_staging.stage_request_token,
        engine,
        oauth_token=request_token.oauth_token,
        oauth_token_secret=request_token.oauth_token_secret,
        user_id=user_id,
        ttl_seconds=ttl_seconds,
    )
    return request_token.authorization_url


async def link_twitter(
    engine: Engine,
    *,
    oauth_token: str,
    oauth_verifier: str,
    client: TwitterOAuthClient,
    ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS,
) -> LinkedIdentity:
    if not oauth_token or not oauth_verifier:
        raise ValidationError("Invalid or expired OAuth request")
    secret, user_id = await run_db(
        token_staging.consume_request_token, engine, oauth_token, ttl_seconds=ttl_seconds
    )
    account = await client.fetch_access_token(oauth_token, secret, oauth_verifier)
    return await run_db(store_identity, engine, user_id, account)


# ---------------------------------------------------------------------------
# Discord / Google (OAuth2)
# ---------------------------------------------------------------------------
async def _link_oauth2(
    engine: Engine,
    *,
    code: str,
    state: str,
    client: DiscordOAuthClient | GoogleOAuthClient,
    secret: str,
    max_age: int,
) -> LinkedIdentity:
    if not code:
        raise ValidationError("Missing authorization code")
    user_id = decode_state(state, client.provider.value, secret=secret, max_age=max_age)
    if not await run_db(_user_exists, engine, user_id):
        raise NotFoundError("User not found")
    account = await client.exchange_code(code)
    return await run_db(store_identity, engine, user_id, account)


async def link_discord(
    engine: Engine,
    *,
    code: str,
    state: str,
    client: DiscordOAuthClient,
    secret: str,
    max_age: int = OAUTH_STATE_TTL_SECONDS,
) -> LinkedIdentity:
    return await _link_oauth2(
        engine, code=code, state=state, client=client, secret=secret, max_age=max_age
    )


async def link_google(
    engine: Engine,
    *,
    code: str,
    state: str,
    client: GoogleOAuthClient,
    secret: str,
    max_age: int = OAUTH_STATE_TTL_SECONDS,
) -> LinkedIdentity:
    return await _link_oauth2(
        engine, code=code, state=state, client=client, secret=secret, max_age=max_age
    )


def _user_exists(engine: Engine, user_id: int) -> bool:
    with Session(engine) as session:
        return session.get(User, user_id) is not None


# ---------------------------------------------------------------------------
# Telegram (login widget)
# ---------------------------------------------------------------------------
def telegram_data_check_string(payload: Mapping[str, Any]) -> str:
    """Sorted ``key=value`` lines of every field except ``hash``."""
    return "\n".join(
        f"{key}={payload[key]}"
        for key in sorted(payload)
        if key != "hash" and payload[key] is not None
    )


def telegram_hash(payload: Mapping[str, Any], bot_token: str) -> str:
    secret_key = hashlib.sha256(bot_token.encode()).digest()
    return hmac.new(
        secret_key, telegram_data_check_string(payload).encode(), hashlib.sha256
    ).hexdigest()


def link_telegram(
    engine: Engine,
    *,
    user_id: int,
    payload: Mapping[str, Any],
    bot_token: str,
    max_age: int = TELEGRAM_AUTH_MAX_AGE_SECONDS,
    now: float | None = None,
) -> LinkedIdentity:
    """Verify a Telegram login-widget payload and link the account.

    Raises
    ------
    ValidationError
        ``hash``, ``auth_date`` or ``id`` is missing.
    ExpiredAuthError
        ``auth_date`` is older than *max_age* seconds.
    SignatureMismatchError
        The hash does not match the payload.
    """
    received = payload.get("hash")
    auth_date = payload.get("auth_date")
    if not received or not auth_date or not payload.get("id"):
        raise ValidationError("Invalid Telegram data")
    try:
        auth_time = int(auth_date)
    except (TypeError, ValueError):
        raise ValidationError("Invalid Telegram data") from None

    current = time.time() if now is None else now
    if current - auth_time > max_age:
        raise ExpiredAuthError("Telegram auth data expired")

    if not hmac.compare_digest(telegram_hash(payload, bot_token), str(received)):
        logger.warning("Telegram login rejected for user %d: hash mismatch", user_id)
        raise SignatureMismatchError("Authentication data verification failed")

    account = ProviderAccount(
        provider=Provider.TELEGRAM,
        provider_user_id=str(payload["id"]),
        username=payload.get("username") or None,
        profile={
            "first_name": payload.get("first_name", ""),
            "last_name": payload.get("last_name", ""),
            "photo_url": payload.get("photo_url", ""),
        },
    )
    return store_identity(engine, user_id, account)


# ---------------------------------------------------------------------------
# Unlink / read
# ---------------------------------------------------------------------------
def unlink_provider(engine: Engine, *, user_id: int, provider: str) -> bool:
    """Remove the user's identity for *provider*; return whether one existed.

    Unlinking Google also clears the user's email.
    """
    try:
        prov = Provider(provider)
    except ValueError:
        raise ValidationError(f"Unknown provider: {provider!r}") from None

    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        removed = session.execute(
            delete(LinkedIdentity).where(
                LinkedIdentity.user_id == user_id,
                LinkedIdentity.provider == prov.value,
            )
        ).rowcount
        if prov == Provider.GOOGLE:
            user.email = ""

    logger.info("User %d unlinked %s (%d rows)", user_id, prov.value, removed)
    return bool(removed)


def get_linked_identities(engine: Engine, user_id: int) -> dict[str, dict | None]:
    """``{provider: {username, provider_user_id, linked_at, profile} | None}``.

    Credentials are never included.
    """
    with Session(engine) as session:
        user = session.scalar(
            select(User).where(User.id == user_id).options(selectinload(User.identities))
        )
        if user is None:
            raise NotFoundError("User not found")
        summary: dict[str, dict | None] = {p.value: None for p in Provider}
        for identity in user.identities:
            summary[identity.provider] = {
                "provider_user_id": identity.provider_user_id,
                "username": identity.username,
                "linked_at": identity.linked_at.isoformat() if identity.linked_at else None,
                "profile": identity.profile or {},
            }
    return summary


def get_user(engine: Engine, user_id: int) -> User:
    with Session(engine) as session:
        user = session.scalar(
            select(User).where(User.id == user_id).options(selectinload(User.identities))
        )
    if user is None:
        raise NotFoundError("User not found")
    return user
