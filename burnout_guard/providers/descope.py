"""
Tool: Descope Client
Purpose: User sign-in through Descope OAuth and calendar tokens from a Descope Outbound App

Handles:
- OAuth authorization URL generation (Google as the social provider)
- Code exchange after the OAuth callback -> Descope user id
- Outbound-app token retrieval (the user's Google Calendar access token)

Google tokens never touch local storage: Descope holds the grant and hands
out a fresh access token per run.

Usage:
    from burnout_guard.providers.descope import DescopeClient, DescopeTokenProvider

    client = DescopeClient(credentials)
    url = await client.start_oauth("https://host/callback")
    user_id = await client.exchange_code(code)

    provider = DescopeTokenProvider(client)
    token = await provider.get_access_token(user_id)

Dependencies:
    - aiohttp (pip install aiohttp)
"""

import logging
from typing import Any

import aiohttp

from burnout_guard.config import DescopeConfig, DescopeCredentials
from burnout_guard.protection.errors import AuthError
from burnout_guard.providers.base import TokenProvider

logger = logging.getLogger(__name__)


# Descope API paths
OAUTH_AUTHORIZE_PATH = "/v1/auth/oauth/authorize"
OAUTH_EXCHANGE_PATH = "/v1/auth/oauth/exchange"
OUTBOUND_USER_TOKEN_PATH = "/v1/mgmt/outbound/app/user/token"


class DescopeClient:
    """
    Minimal Descope REST client.

    Auth endpoints authenticate with the project id; management endpoints
    with "<project id>:<management key>".
    """

    def __init__(
        self,
        credentials: DescopeCredentials,
        config: DescopeConfig | None = None,
    ):
        self.credentials = credentials
        self.config = config or DescopeConfig()
        self.base_url = self.config.base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=self.config.request_timeout_seconds)

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.credentials.project_id}",
            "Content-Type": "application/json",
        }

    def _management_headers(self) -> dict[str, str]:
        return {
            "Authorization": (
                f"Bearer {self.credentials.project_id}:{self.credentials.management_key}"
            ),
            "Content-Type": "application/json",
        }

    async def _post(
        self,
        path: str,
        headers: dict[str, str],
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST to the Descope API and return the decoded body, raising AuthError on failure."""
        url = f"{self.base_url}{path}"
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(url, headers=headers, json=data or {}, params=params) as resp:
                    try:
                        body = await resp.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError):
                        body = {}
                    body = body or {}

                    if resp.status != 200:
                        message = (
                            body.get("errorMessage")
                            or body.get("errorDescription")
                            or f"HTTP {resp.status}"
                        )
                        raise AuthError(f"Descope request failed: {message}", status_code=resp.status)
                    return body
        except (aiohttp.ClientError, TimeoutError) as e:
            raise AuthError(f"Descope request failed: {e!s}") from e

    async def start_oauth(self, redirect_url: str, provider: str | None = None) -> str:
        """
        Begin an OAuth sign-in.

        Args:
            redirect_url: Where Descope sends the user back with ?code=
            provider: Social provider (default from config, 'google')

        Returns:
            Provider authorization URL to redirect the browser to
        """
        params = {
            "provider": provider or self.config.oauth_provider,
            "redirectUrl": redirect_url,
        }
        body = await self._post(OAUTH_AUTHORIZE_PATH, self._auth_headers(), params=params)

        url = body.get("url")
        if not url:
            raise AuthError("Descope did not return an authorization URL")
        return url

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an OAuth callback code for a signed-in Descope user.

        Returns:
            Descope user id
        """
        if not code:
            raise AuthError("No authorization code received")

        body = await self._post(OAUTH_EXCHANGE_PATH, self._auth_headers(), data={"code": code})

        user = body.get("user") or {}
        user_id = user.get("userId")
        if not body.get("sessionJwt") or not user_id:
            raise AuthError("Descope exchange returned no session")
        return user_id

    async def get_outbound_token(self, app_id: str, user_id: str) -> str:
        """
        Fetch the latest outbound-app access token stored for a user.

        Args:
            app_id: Descope Outbound App id (the Google Calendar connection)
            user_id: Descope user id

        Returns:
            Access token for the outbound provider
        """
        body = await self._post(
            OUTBOUND_USER_TOKEN_PATH,
            self._management_headers(),
            data={"appId": app_id, "userId": user_id},
        )

        token = body.get("token") or {}
        access_token = token.get("accessToken")
        if not access_token:
            raise AuthError(f"No outbound token stored for user {user_id}")
        return access_token


class DescopeTokenProvider(TokenProvider):
    """TokenProvider backed by a Descope Outbound App."""

    def __init__(self, client: DescopeClient, outbound_app_id: str | None = None):
        self.client = client
        self.outbound_app_id = outbound_app_id or client.credentials.outbound_app_id

    @property
    def provider_name(self) -> str:
        return "descope"

    async def get_access_token(self, user_id: str) -> str:
        if not self.outbound_app_id:
            raise AuthError("DESCOPE_OUTBOUND_APP_ID is not configured")
        return await self.client.get_outbound_token(self.outbound_app_id, user_id)
