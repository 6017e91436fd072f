"""
eventquest.api.routes.identities — Account linking endpoints
=============================================================

Twitter (OAuth1.0a), Discord and Google (OAuth2) and Telegram (login
widget).  Provider credentials come from the environment; a missing one is
reported as a 500 naming the variable.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from eventquest.api.deps import JWT_SECRET, CurrentUserId, get_config, get_engine
from eventquest.config import EventQuestConfig
from eventquest.database.engine import run_db
from eventquest.database.models import Provider
from eventquest.services import identity_service
from eventquest.services.oauth_state import encode_state
from eventquest.services.providers import (
    DiscordOAuthClient,
    GoogleOAuthClient,
    TwitterOAuthClient,
)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["identities"])


def _require_env(label: str, *names: str) -> list[str]:
    """Return the values of *names* or raise a clear 500."""
    values = [os.getenv(name, "").strip() for name in names]
    missing = [name for name, value in zip(names, values) if not value]
    if missing:
        raise HTTPException(
            status_code=500,
            detail=f"{label} is not configured: missing " + ", ".join(missing),
        )
    return values


# ---------------------------------------------------------------------------
# Provider client dependencies
# ---------------------------------------------------------------------------
def get_twitter_client(cfg: EventQuestConfig = Depends(get_config)) -> TwitterOAuthClient:
    key, secret = _require_env("Twitter OAuth", "TWITTER_API_KEY", "TWITTER_API_SECRET")
    return TwitterOAuthClient(key, secret, timeout=cfg.provider_timeout_seconds)


def get_discord_client(cfg: EventQuestConfig = Depends(get_config)) -> DiscordOAuthClient:
    client_id, client_secret, redirect_uri = _require_env(
        "Discord OAuth",
        "DISCORD_CLIENT_ID", "DISCORD_CLIENT_SECRET", "DISCORD_REDIRECT_URI",
    )
    return DiscordOAuthClient(
        client_id, client_secret, redirect_uri, timeout=cfg.provider_timeout_seconds
    )


def get_google_client(cfg: EventQuestConfig = Depends(get_config)) -> GoogleOAuthClient:
    client_id, client_secret, redirect_uri = _require_env(
        "Google OAuth",
        "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI",
    )
    return GoogleOAuthClient(
        client_id, client_secret, redirect_uri, timeout=cfg.provider_timeout_seconds
    )


def get_telegram_bot_token() -> str:
    (token,) = _require_env("Telegram login", "TELEGRAM_BOT_TOKEN")
    return token


# ---------------------------------------------------------------------------
# Twitter
# ---------------------------------------------------------------------------
@router.get("/twitter/auth")
async def twitter_auth(
    user_id: CurrentUserId,
    callback_url: str | None = None,
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
    client: TwitterOAuthClient = Depends(get_twitter_client),
):
    url = await identity_service.begin_twitter_link(
        engine,
        user_id=user_id,
        callback_url=callback_url or f"{cfg.frontend_url}/api/twitter/callback",
        client=client,
        ttl_seconds=cfg.twitter_token_ttl_seconds,
    )
    return {"auth_url": url}


@router.get("/twitter/callback")
async def twitter_callback(
    oauth_token: str = "",
    oauth_verifier: str = "",
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
    client: TwitterOAuthClient = Depends(get_twitter_client),
):
    identity = await identity_service.link_twitter(
        engine,
        oauth_token=oauth_token,
        oauth_verifier=oauth_verifier,
        client=client,
        ttl_seconds=cfg.twitter_token_ttl_seconds,
    )
    return {"success": True, "username": identity.username}


# ---------------------------------------------------------------------------
# Discord / Google
# ---------------------------------------------------------------------------
@router.get("/discord/auth")
def discord_auth(
    user_id: CurrentUserId,
    client: DiscordOAuthClient = Depends(get_discord_client),
):
    state = encode_state(user_id, Provider.DISCORD.value, secret=JWT_SECRET)
    return {"auth_url": client.authorization_url(state)}


@router.get("/discord/callback")
async def discord_callback(
    code: str = "",
    state: str = "",
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
    client: DiscordOAuthClient = Depends(get_discord_client),
):
    identity = await identity_service.link_discord(
        engine,
        code=code,
        state=state,
        client=client,
        secret=JWT_SECRET,
        max_age=cfg.oauth_state_ttl_seconds,
    )
    return {
        "success": True,
        "username": identity.username,
        "discriminator": (identity.profile or {}).get("discriminator"),
    }


@router.get("/google/auth")
def google_auth(
    user_id: CurrentUserId,
    client: GoogleOAuthClient = Depends(get_google_client),
):
    state = encode_state(user_id, Provider.GOOGLE.value, secret=JWT_SECRET)
    return {"auth_url": client.authorization_url(state)}


@router.get("/google/callback")
async def google_callback(
    code: str = "",
    state: str = "",
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
    client: GoogleOAuthClient = Depends(get_google_client),
):
    identity = await identity_service.link_google(
        engine,
        code=code,
        state=state,
        client=client,
        secret=JWT_SECRET,
        max_age=cfg.oauth_state_ttl_seconds,
    )
    profile = identity.profile or {}
    return {"success": True, "email": profile.get("email"), "name": profile.get("name")}


# ---------------------------------------------------------------------------
# Telegram
# ---------------------------------------------------------------------------
@router.post("/telegram/callback")
async def telegram_callback(
    user_id: CurrentUserId,
    payload: dict[str, Any] = Body(...),
    engine=Depends(get_engine),
    cfg: EventQuestConfig = Depends(get_config),
    bot_token: str = Depends(get_telegram_bot_token),
):
    identity = await run_db(
        identity_service.link_telegram,
        engine,
        user_id=user_id,
        payload=payload,
        bot_token=bot_token,
        max_age=cfg.telegram_auth_max_age_seconds,
    )
    return {"success": True, "username": identity.username}


# ---------------------------------------------------------------------------
# Unlink / summary
# ---------------------------------------------------------------------------
@router.post("/{provider}/disconnect")
def disconnect(provider: str, user_id: CurrentUserId, engine=Depends(get_engine)):
    identity_service.unlink_provider(engine, user_id=user_id, provider=provider)
    return {"success": True}


@router.get("/identities")
def identities(user_id: CurrentUserId, engine=Depends(get_engine)):
    return {"identities": identity_service.get_linked_identities(engine, user_id)}
