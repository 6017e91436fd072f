"""
eventquest.config — YAML Configuration Loader
==============================================

This module reads ``config.yaml`` for non-secret settings (public URLs,
timeouts, TTLs, paging).  Secrets (JWT signing key, OAuth client secrets,
the Telegram bot token, ``DATABASE_URL``) stay in the environment / ``.env``.

Usage::

    from eventquest.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.app_name)          # "EventQuest"
    print(cfg.oauth_state_ttl_seconds)  # 300
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from eventquest.constants import (
    OAUTH_STATE_TTL_SECONDS,
    TELEGRAM_AUTH_MAX_AGE_SECONDS,
    TWITTER_REQUEST_TOKEN_TTL_SECONDS,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class EventQuestConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str
    frontend_url: str

    # Event creation is restricted to users flagged ``verified``
    require_verified_organizers: bool = True

    # Identity linking
    oauth_state_ttl_seconds: int = OAUTH_STATE_TTL_SECONDS
    twitter_token_ttl_seconds: int = TWITTER_REQUEST_TOKEN_TTL_SECONDS
    telegram_auth_max_age_seconds: int = TELEGRAM_AUTH_MAX_AGE_SECONDS
    provider_timeout_seconds: float = 10.0
    token_sweep_interval_seconds: int = 300

    # Listing
    default_page_size: int = 10


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> EventQuestConfig:
    """Read *path* and return a :class:`EventQuestConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return EventQuestConfig(
        app_name=raw["app_name"],
        frontend_url=str(raw["frontend_url"]).rstrip("/"),
        require_verified_organizers=bool(raw.get("require_verified_organizers", True)),
        oauth_state_ttl_seconds=int(
            raw.get("oauth_state_ttl_seconds", OAUTH_STATE_TTL_SECONDS)
        ),
        twitter_token_ttl_seconds=int(
            raw.get("twitter_token_ttl_seconds", TWITTER_REQUEST_TOKEN_TTL_SECONDS)
        ),
        telegram_auth_max_age_seconds=int(
            raw.get("telegram_auth_max_age_seconds", TELEGRAM_AUTH_MAX_AGE_SECONDS)
        ),
        provider_timeout_seconds=float(raw.get("provider_timeout_seconds", 10)),
        token_sweep_interval_seconds=int(raw.get("token_sweep_interval_seconds", 300)),
        default_page_size=int(raw.get("default_page_size", 10)),
    )
