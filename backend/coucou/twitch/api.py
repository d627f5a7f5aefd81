"""Helix API client: user lookup and webhook hub (un)subscription."""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

from coucou.core.errors import ExternalAPIError
from coucou.twitch.credentials import CredentialManager

logger = logging.getLogger(__name__)

HELIX_BASE = "https://api.twitch.tv/helix"

HubMode = Literal["subscribe", "unsubscribe"]


def stream_topic(user_id: str) -> str:
    """Webhook topic for stream up/down events of one user."""
    return f"{HELIX_BASE}/streams?user_id={user_id}"


class HelixClient:
    """Authenticated calls to the Helix API.

    Every request takes its bearer token from the CredentialManager, so
    concurrent callers share one app token.
    """

    def __init__(
        self,
        credentials: CredentialManager,
        http: httpx.AsyncClient,
        *,
        callback_url: str,
        secret: str = "",
        base_url: str = HELIX_BASE,
    ) -> None:
        self.credentials = credentials
        self.callback_url = callback_url
        self.secret = secret
        self.base_url = base_url
        self._http = http

    async def _headers(self) -> dict[str, str]:
        token = await self.credentials.ensure_token()
        return {"Authorization": f"Bearer {token}", "Client-Id": self.credentials.client_id}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = await self._headers()
        try:
            response = await self._http.request(
                method, f"{self.base_url}/{path}", headers=headers, **kwargs
            )
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"Helix {method} /{path} error: {type(e).__name__}: {e}") from e

        if response.status_code >= 400:
            raise ExternalAPIError(
                f"Helix {method} /{path} failed: HTTP {response.status_code} {response.text}",
                status_code=response.status_code,
            )
        return response

    async def get_user_id(self, login: str) -> str:
        response = await self._request("GET", "users", params={"login": login})
        users = response.json().get("data", [])
        if not users:
            raise ExternalAPIError(f"Unknown twitch user: {login}")
        return users[0]["id"]

    async def post_webhook(self, mode: HubMode, topic: str, lease_seconds: int) -> None:
        payload: dict[str, Any] = {
            "hub.callback": self.callback_url,
            "hub.mode": mode,
            "hub.topic": topic,
            "hub.lease_seconds": lease_seconds,
        }
        if self.secret:
            payload["hub.secret"] = self.secret
        await self._request("POST", "webhooks/hub", json=payload)
        logger.info(f"Webhook {mode} request sent for {topic}")
