"""
eventquest.services.providers — External OAuth provider clients
================================================================

Thin async clients for the three OAuth handshakes we run:

* :class:`DiscordOAuthClient` — OAuth2 authorization-code, ``identify`` scope.
* :class:`GoogleOAuthClient` — OAuth2 authorization-code, ``email profile``.
* :class:`TwitterOAuthClient` — OAuth1.0a three-legged flow via Authlib.

Each call carries a bounded timeout and is not retried.  Transport errors,
timeouts and non-2xx answers all surface as
:class:`~eventquest.errors.ExternalServiceError`; callers never see httpx or
Authlib exception types.

The OAuth2 clients accept an optional ``transport`` so tests can plug in an
``httpx.MockTransport``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth1Client

from eventquest.database.models import Provider
from eventquest.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"
DISCORD_AUTHORIZE_URL = "https://discord.com/oauth2/authorize"

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

TWITTER_REQUEST_TOKEN_URL = "https://api.twitter.com/oauth/request_token"
TWITTER_AUTHORIZE_URL = "https://api.twitter.com/oauth/authenticate"
TWITTER_ACCESS_TOKEN_URL = "https://api.twitter.com/oauth/access_token"


@dataclass(slots=True)
class ProviderAccount:
    """What a finished handshake tells us about the external account."""
    provider: Provider
    provider_user_id: str
    username: str | None
    access_token: str | None = None
    refresh_token: str | None = None
    token_secret: str | None = None
    email: str | None = None
    profile: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RequestToken:
    oauth_token: str
    oauth_token_secret: str
    authorization_url: str


# ---------------------------------------------------------------------------
# OAuth2 (authorization code)
# ---------------------------------------------------------------------------
class _OAuth2Client(ABC):
    provider: Provider
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    def authorization_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            "state": state,
        })
        return f"{self.authorize_url}?{query}"

    def _token_request(self, code: str) -> dict[str, str]:
        return {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }

    @abstractmethod
    def _account(self, token: dict, info: dict) -> ProviderAccount:
        """Build the linked account from the token response and profile."""

    async def exchange_code(self, code: str) -> ProviderAccount:
        """Trade an authorization *code* for tokens and the user's profile."""
        name = self.provider.value
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                token_resp = await client.post(self.token_url, data=self._token_request(code))
                if token_resp.status_code != 200:
                    logger.warning(
                        "%s token exchange failed: HTTP %d", name, token_resp.status_code
                    )
                    raise ExternalServiceError(f"{name} token exchange failed")
                token = token_resp.json()
                access_token = token.get("access_token")
                if not access_token:
                    raise ExternalServiceError(f"No access token returned by {name}")

                user_resp = await client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                if user_resp.status_code != 200:
                    logger.warning(
                        "%s profile fetch failed: HTTP %d", name, user_resp.status_code
                    )
                    raise ExternalServiceError(f"Failed to fetch {name} user")
                info = user_resp.json()
        except httpx.HTTPError as exc:
            logger.exception("%s OAuth request failed", name)
            raise ExternalServiceError(f"{name} is unreachable") from exc
        except ValueError as exc:   # undecodable JSON body
            raise ExternalServiceError(f"{name} returned an invalid response") from exc

        if not isinstance(info, dict) or not info.get("id"):
            logger.warning("%s profile response carried no user id", name)
            raise ExternalServiceError(f"{name} returned a profile without an id")
        return self._account(token, info)


class DiscordOAuthClient(_OAuth2Client):
    provider = Provider.DISCORD
    authorize_url = DISCORD_AUTHORIZE_URL
    token_url = f"{DISCORD_API}/oauth2/token"
    userinfo_url = f"{DISCORD_API}/users/@me"
    scope = "identify"

    def _account(self, token: dict, info: dict) -> ProviderAccount:
        return ProviderAccount(
            provider=self.provider,
            provider_user_id=str(info.get("id")),
            username=info.get("username"),
            access_token=token.get("access_token"),
            refresh_token=token.get("refresh_token"),
            profile={
                "global_name": info.get("global_name"),
                "discriminator": info.get("discriminator"),
                "avatar": info.get("avatar"),
            },
        )


class GoogleOAuthClient(_OAuth2Client):
    provider = Provider.GOOGLE
    authorize_url = GOOGLE_AUTHORIZE_URL
    token_url = GOOGLE_TOKEN_URL
    userinfo_url = GOOGLE_USERINFO_URL
    scope = "email profile"

    def authorization_url(self, state: str) -> str:
        # offline access so Google hands back a refresh token
        return super().authorization_url(state) + "&access_type=offline&prompt=consent"

    def _account(self, token: dict, info: dict) -> ProviderAccount:
        return ProviderAccount(
            provider=self.provider,
            provider_user_id=str(info.get("id")),
            username=info.get("email"),
            access_token=token.get("access_token"),
            refresh_token=token.get("refresh_token"),
            email=info.get("email"),
            profile={
                "name": info.get("name"),
                "picture": info.get("picture"),
                "email": info.get("email"),
            },
        )


# ---------------------------------------------------------------------------
# OAuth1.0a (Twitter)
# ---------------------------------------------------------------------------
class TwitterOAuthClient:
    """Three-legged OAuth1.0a against ``api.twitter.com`` using Authlib."""

    provider = Provider.TWITTER

    def __init__(self, api_key: str, api_secret: str, *, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout

    async def fetch_request_token(self, callback_url: str) -> RequestToken:
        try:
            async with AsyncOAuth1Client(
                self.api_key,
                self.api_secret,
                redirect_uri=callback_url,
                timeout=self.timeout,
            ) as client:
                token = await client.fetch_request_token(TWITTER_REQUEST_TOKEN_URL)
                url = client.create_authorization_url(TWITTER_AUTHORIZE_URL)
        except (httpx.HTTPError, AuthlibBaseError, ValueError) as exc:
            logger.exception("Twitter request-token call failed")
            raise ExternalServiceError("Failed to initiate Twitter authentication") from exc

        return RequestToken(
            oauth_token=token["oauth_token"],
            oauth_token_secret=token["oauth_token_secret"],
            authorization_url=url,
        )

    async def fetch_access_token(
        self, oauth_token: str, oauth_token_secret: str, oauth_verifier: str
    ) -> ProviderAccount:
        try:
            async with AsyncOAuth1Client(
                self.api_key,
                self.api_secret,
                token=oauth_token,
                token_secret=oauth_token_secret,
                timeout=self.timeout,
            ) as client:
                token = await client.fetch_access_token(
                    TWITTER_ACCESS_TOKEN_URL, verifier=oauth_verifier
                )
        except (httpx.HTTPError, AuthlibBaseError, ValueError) as exc:
            logger.exception("Twitter access-token call failed")
            raise ExternalServiceError("Twitter login failed") from exc

        return ProviderAccount(
            provider=self.provider,
            provider_user_id=str(token.get("user_id", "")),
            username=token.get("screen_name"),
            access_token=token.get("oauth_token"),
            token_secret=token.get("oauth_token_secret"),
            profile={"screen_name": token.get("screen_name")},
        )
