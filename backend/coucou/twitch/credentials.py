"""App access token lifecycle for the Twitch API.

The token is fetched with the client-credentials grant and cached until it
is within ``SAFETY_MARGIN`` of its expiry. Renewal is single-flight: callers
that arrive while a renewal is running wait for that renewal and get its
result (or its error) instead of issuing their own request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

import httpx

from coucou.core.clock import Clock, utcnow
from coucou.core.errors import ExternalAPIError

LOGGER = logging.getLogger("Credentials")

OAUTH_TOKEN_URL = "https://id.twitch.tv/oauth2/token"
SAFETY_MARGIN = timedelta(seconds=10)


@dataclass(frozen=True)
class ClientCredentials:
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime, margin: timedelta = SAFETY_MARGIN) -> bool:
        return now < self.expires_at - margin


class CredentialManager:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        http: httpx.AsyncClient,
        *,
        token_url: str = OAUTH_TOKEN_URL,
        clock: Clock = utcnow,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("Twitch client_id and client_secret are required")

        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self._http = http
        self._clock = clock
        self._credentials: ClientCredentials | None = None
        self._renewal: asyncio.Task[ClientCredentials] | None = None
        self._lock = asyncio.Lock()

    @property
    def credentials(self) -> ClientCredentials | None:
        return self._credentials

    async def ensure_token(self) -> str:
        """Return a valid app token, renewing it when missing or near expiry."""
        async with self._lock:
            creds = self._credentials
            if creds is not None and creds.is_valid(self._clock()):
                return creds.token
            if self._renewal is None:
                self._renewal = asyncio.create_task(self._renew())
            renewal = self._renewal

        # Shielded so a cancelled caller does not cancel the shared renewal.
        creds = await asyncio.shield(renewal)
        return creds.token

    async def _renew(self) -> ClientCredentials:
        try:
            creds = await self.fetch_credentials()
        finally:
            self._renewal = None
        self._credentials = creds
        return creds

    async def fetch_credentials(self) -> ClientCredentials:
        """Call the token endpoint once."""
        LOGGER.info("Getting twitch credentials")
        try:
            response = await self._http.post(
                self.token_url,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
            )
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"Token request failed: {type(e).__name__}: {e}") from e

        if response.status_code != 200:
            raise ExternalAPIError(
                f"Failed to get app token: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExternalAPIError(f"Invalid token response: {e}") from e
        token = data.get("access_token")
        if not token:
            raise ExternalAPIError("No access_token in token response")

        try:
            expires_in = int(data["expires_in"])
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalAPIError(f"Invalid expires_in in token response: {e!r}") from e
        if expires_in <= 0:
            raise ExternalAPIError(f"Invalid expires_in in token response: {expires_in}")

        expires_at = self._clock() + timedelta(seconds=expires_in)
        LOGGER.info(f"Got twitch credentials. Expire at: {expires_at.isoformat()}")
        return ClientCredentials(token=token, expires_at=expires_at)
