import asyncio
import hashlib
import hmac
import json
from datetime import timedelta

import pytest
from aiohttp import test_utils

from coucou.twitch.leases import LeaseManager
from coucou.twitch.notifications import NotificationPipeline, StreamOffline, StreamOnline
from coucou.twitch.webhook_server import (
    NOTIFICATIONS_PATH,
    WebhookServer,
    topic_user_id,
    verify_signature,
)

from conftest import T0

TOPIC = "https://api.twitch.tv/helix/streams?user_id=1234"
ONLINE = {
    "data": [
        {"id": "9", "user_id": "1234", "user_name": "gikiam", "type": "live", "title": "hi"}
    ]
}


def sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture
def leases(clock) -> LeaseManager:
    return LeaseManager(api=None, clock=clock)  # type: ignore[arg-type]


@pytest.fixture
def pipeline() -> NotificationPipeline:
    return NotificationPipeline()


@pytest.fixture
async def client(pipeline, leases):
    server = WebhookServer(pipeline, leases, secret="s3cret")
    async with test_utils.TestClient(test_utils.TestServer(server.app)) as test_client:
        yield test_client


def test_topic_user_id() -> None:
    assert topic_user_id(TOPIC) == "1234"
    assert topic_user_id("https://api.twitch.tv/helix/streams") is None
    assert topic_user_id(None) is None


def test_verify_signature() -> None:
    body = b'{"data": []}'
    assert verify_signature("k", body, sign("k", body))
    assert not verify_signature("k", body, sign("other", body))
    assert not verify_signature("k", body, None)
    assert not verify_signature("k", body, "md42=abc")
    assert not verify_signature("k", body, "shake_128=abcd")
    assert not verify_signature("k", body, "sha512=" + "0" * 128)
    assert not verify_signature("k", body, "sha256=\u00e9t\u00e9")


@pytest.mark.anyio
async def test_subscribe_verification_echoes_challenge_and_records_lease(client, leases) -> None:
    response = await client.get(
        NOTIFICATIONS_PATH,
        params={
            "hub.mode": "subscribe",
            "hub.topic": TOPIC,
            "hub.challenge": "abc123",
            "hub.lease_seconds": "864000",
        },
    )
    assert response.status == 200
    assert await response.text() == "abc123"

    [lease] = await leases.leases()
    assert lease.topic == TOPIC
    assert lease.expires_at == T0 + timedelta(seconds=864000)


@pytest.mark.anyio
async def test_unsubscribe_verification_forgets_lease(client, leases) -> None:
    await leases.record(TOPIC)
    response = await client.get(
        NOTIFICATIONS_PATH,
        params={"hub.mode": "unsubscribe", "hub.topic": TOPIC, "hub.challenge": "xyz"},
    )
    assert await response.text() == "xyz"
    assert await leases.leases() == []


@pytest.mark.anyio
async def test_denied_subscription(client, leases) -> None:
    response = await client.get(
        NOTIFICATIONS_PATH,
        params={"hub.mode": "denied", "hub.topic": TOPIC, "hub.reason": "unauthorized"},
    )
    assert response.status == 200
    assert await leases.leases() == []


@pytest.mark.anyio
async def test_verification_without_challenge(client) -> None:
    response = await client.get(NOTIFICATIONS_PATH, params={"hub.mode": "subscribe"})
    assert response.status == 400


@pytest.mark.anyio
async def test_signed_notification_is_published(client, pipeline) -> None:
    body = json.dumps(ONLINE).encode()
    response = await client.post(
        NOTIFICATIONS_PATH, data=body, headers={"X-Hub-Signature": sign("s3cret", body)}
    )
    assert response.status == 204

    notification = await asyncio.wait_for(pipeline.receive.receive(), 1)
    assert isinstance(notification, StreamOnline)
    assert notification.account == "gikiam"


@pytest.mark.anyio
async def test_offline_notification_carries_topic_user(client, pipeline) -> None:
    body = b'{"data": []}'
    response = await client.post(
        NOTIFICATIONS_PATH,
        data=body,
        headers={
            "X-Hub-Signature": sign("s3cret", body),
            "Link": f'<https://api.twitch.tv/helix/webhooks/hub>; rel="hub", <{TOPIC}>; rel="self"',
        },
    )
    assert response.status == 204
    assert await pipeline.receive.receive() == StreamOffline(user_id="1234")


@pytest.mark.anyio
async def test_bad_signature_is_rejected(client) -> None:
    body = json.dumps(ONLINE).encode()
    response = await client.post(
        NOTIFICATIONS_PATH, data=body, headers={"X-Hub-Signature": sign("wrong", body)}
    )
    assert response.status == 403


@pytest.mark.anyio
async def test_unsupported_signature_algorithm_is_rejected(client) -> None:
    body = json.dumps(ONLINE).encode()
    response = await client.post(
        NOTIFICATIONS_PATH, data=body, headers={"X-Hub-Signature": "shake_128=abcd"}
    )
    assert response.status == 403


@pytest.mark.anyio
async def test_malformed_notification(client) -> None:
    body = b'{"nope": 1}'
    response = await client.post(
        NOTIFICATIONS_PATH, data=body, headers={"X-Hub-Signature": sign("s3cret", body)}
    )
    assert response.status == 400


@pytest.mark.anyio
async def test_invalid_json(client) -> None:
    body = b"not json"
    response = await client.post(
        NOTIFICATIONS_PATH, data=body, headers={"X-Hub-Signature": sign("s3cret", body)}
    )
    assert response.status == 400


@pytest.mark.anyio
async def test_health(client) -> None:
    response = await client.get("/health")
    assert response.status == 200
    payload = await response.json()
    assert payload["status"] == "healthy"
    assert payload["leases"] == 0


@pytest.mark.anyio
async def test_health_reports_database_down(pipeline, leases) -> None:
    async def db_down() -> bool:
        return False

    server = WebhookServer(pipeline, leases, db_health=db_down)
    async with test_utils.TestClient(test_utils.TestServer(server.app)) as test_client:
        response = await test_client.get("/health")
        assert response.status == 503
        payload = await response.json()
        assert payload["status"] == "degraded"
        assert payload["database"] is False
