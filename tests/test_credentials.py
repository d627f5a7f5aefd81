import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from coucou.core.errors import ExternalAPIError
from coucou.twitch.credentials import OAUTH_TOKEN_URL, ClientCredentials, CredentialManager

from conftest import FakeClock


class TokenEndpoint:
    """Token endpoint double counting calls; each call can be held until released."""

    def __init__(self, status: int = 200, expires_in: int = 3600) -> None:
        self.calls = 0
        self.status = status
        self.expires_in = expires_in
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        assert str(request.url) == OAUTH_TOKEN_URL
        body = dict(httpx.QueryParams(request.content.decode()))
        assert body == {
            "client_id": "id",
            "client_secret": "secret",
            "grant_type": "client_credentials",
        }
        await self.release.wait()
        if self.status != 200:
            return httpx.Response(self.status, json={"message": "nope"})
        return httpx.Response(
            200, json={"access_token": f"token-{self.calls}", "expires_in": self.expires_in}
        )


def make_manager(http: httpx.AsyncClient, clock=None) -> CredentialManager:
    return CredentialManager("id", "secret", http, clock=clock or FakeClock())


def test_validity_boundary() -> None:
    expires_at = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    creds = ClientCredentials(token="t", expires_at=expires_at)
    assert creds.is_valid(expires_at - timedelta(seconds=11))
    assert not creds.is_valid(expires_at - timedelta(seconds=9))


def test_client_id_and_secret_are_required() -> None:
    with pytest.raises(ValueError):
        CredentialManager("", "secret", None)  # type: ignore[arg-type]


@pytest.mark.anyio
async def test_concurrent_callers_share_one_fetch() -> None:
    endpoint = TokenEndpoint()
    endpoint.release.clear()
    async with httpx.AsyncClient(transport=httpx.MockTransport(endpoint)) as http:
        manager = make_manager(http)

        first = asyncio.create_task(manager.ensure_token())
        second = asyncio.create_task(manager.ensure_token())
        await asyncio.sleep(0.01)
        endpoint.release.set()

        assert await first == await second == "token-1"
        assert endpoint.calls == 1


@pytest.mark.anyio
async def test_cached_token_is_reused_until_near_expiry(clock) -> None:
    endpoint = TokenEndpoint(expires_in=60)
    async with httpx.AsyncClient(transport=httpx.MockTransport(endpoint)) as http:
        manager = make_manager(http, clock)

        assert await manager.ensure_token() == "token-1"
        clock.now += timedelta(seconds=49)
        assert await manager.ensure_token() == "token-1"
        clock.now += timedelta(seconds=2)
        assert await manager.ensure_token() == "token-2"
        assert endpoint.calls == 2


@pytest.mark.anyio
async def test_failure_reaches_every_waiter_and_is_not_cached() -> None:
    endpoint = TokenEndpoint(status=500)
    endpoint.release.clear()
    async with httpx.AsyncClient(transport=httpx.MockTransport(endpoint)) as http:
        manager = make_manager(http)

        waiters = [asyncio.create_task(manager.ensure_token()) for _ in range(3)]
        await asyncio.sleep(0.01)
        endpoint.release.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert all(isinstance(r, ExternalAPIError) for r in results)
        assert results[0].status_code == 500
        assert endpoint.calls == 1
        assert manager.credentials is None

        # the next call starts over
        endpoint.status = 200
        assert await manager.ensure_token() == "token-2"


@pytest.mark.anyio
async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
        manager = CredentialManager("id", "secret", http)
        with pytest.raises(ExternalAPIError, match="ConnectError"):
            await manager.ensure_token()


@pytest.mark.anyio
async def test_missing_access_token() -> None:
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    ) as http:
        manager = CredentialManager("id", "secret", http)
        with pytest.raises(ExternalAPIError, match="access_token"):
            await manager.ensure_token()


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload", [{}, {"expires_in": "soon"}, {"expires_in": None}, {"expires_in": 0}]
)
async def test_unusable_expiry_is_rejected(payload) -> None:
    body = {"access_token": "abc", **payload}
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
    ) as http:
        manager = CredentialManager("id", "secret", http)
        with pytest.raises(ExternalAPIError, match="expires_in"):
            await manager.ensure_token()
        assert manager.credentials is None
