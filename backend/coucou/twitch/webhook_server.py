"""HTTP endpoint receiving webhook hub callbacks."""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Awaitable, Callable
from urllib.parse import parse_qs, urlparse

from aiohttp import web

from coucou.twitch.leases import LeaseManager
from coucou.twitch.notifications import NotificationPipeline, decode_notification

logger = logging.getLogger("Webhook")

NOTIFICATIONS_PATH = "/twitch/notifications"

SIGNATURE_ALGORITHMS = {"sha1": hashlib.sha1, "sha256": hashlib.sha256}


def topic_user_id(topic: str | None) -> str | None:
    if not topic:
        return None
    values = parse_qs(urlparse(topic).query).get("user_id")
    return values[0] if values else None


def verify_signature(secret: str, body: bytes, header: str | None) -> bool:
    """Check an ``X-Hub-Signature: sha256=<hex>`` header against *body*."""
    if not header or "=" not in header:
        return False
    algorithm, _, signature = header.partition("=")
    digest = SIGNATURE_ALGORITHMS.get(algorithm)
    if digest is None:
        return False
    expected = hmac.new(secret.encode(), body, digest).hexdigest()
    return hmac.compare_digest(expected.encode(), signature.encode())


class WebhookServer:
    """Subscription verification, push notifications and a liveness route."""

    def __init__(
        self,
        pipeline: NotificationPipeline,
        leases: LeaseManager,
        *,
        host: str = "0.0.0.0",
        port: int = 8080,
        secret: str = "",
        path: str = NOTIFICATIONS_PATH,
        db_health: Callable[[], Awaitable[bool]] | None = None,
    ):
        self.pipeline = pipeline
        self.leases = leases
        self.host = host
        self.port = port
        self.secret = secret
        self.path = path
        self.db_health = db_health
        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._setup_routes()

    def _setup_routes(self) -> None:
        self.app.router.add_get(self.path, self.handle_verification)
        self.app.router.add_post(self.path, self.handle_notification)
        self.app.router.add_get("/health", self.handle_health)

    async def handle_health(self, request: web.Request) -> web.Response:
        db_ok = await self.db_health() if self.db_health else True
        return web.json_response(
            {
                "status": "healthy" if db_ok else "degraded",
                "database": db_ok,
                "uptime_seconds": int(time.time() - self._start_time),
                "leases": len(await self.leases.leases()),
            },
            status=200 if db_ok else 503,
        )

    async def handle_verification(self, request: web.Request) -> web.Response:
        """Hub intent verification: echo the challenge and track the lease."""
        query = request.query
        mode = query.get("hub.mode")
        topic = query.get("hub.topic")

        if mode == "denied":
            logger.warning(f"Subscription denied for {topic}: {query.get('hub.reason')}")
            return web.Response(text="")

        challenge = query.get("hub.challenge")
        if not challenge or not topic or mode not in ("subscribe", "unsubscribe"):
            return web.Response(status=400, text="missing hub parameters")

        if mode == "subscribe":
            try:
                lease_seconds = int(query.get("hub.lease_seconds", ""))
            except ValueError:
                lease_seconds = None
            lease = await self.leases.record(topic, lease_seconds)
            logger.info(f"Subscription confirmed for {topic}, lease until {lease.expires_at.isoformat()}")
        else:
            await self.leases.forget(topic)
            logger.info(f"Unsubscription confirmed for {topic}")

        return web.Response(text=challenge)

    async def handle_notification(self, request: web.Request) -> web.Response:
        body = await request.read()

        if self.secret and not verify_signature(
            self.secret, body, request.headers.get("X-Hub-Signature")
        ):
            logger.warning("Rejected notification with bad signature")
            return web.Response(status=403, text="bad signature")

        try:
            notification = decode_notification(
                json.loads(body), user_id=topic_user_id(_self_topic(request))
            )
        except ValueError as e:
            logger.warning(f"Malformed notification: {e}")
            return web.Response(status=400, text="malformed notification")

        # Blocks until the consumer has taken the previous notification.
        await self.pipeline.publish(notification)
        return web.Response(status=204)

    async def start(self) -> None:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        logger.info(f"Webhook server started on {self.host}:{self.port}")
        logger.info(f"  POST http://{self.host}:{self.port}{self.path} - notifications")
        logger.info(f"  GET  http://{self.host}:{self.port}/health - Health check")

    async def stop(self) -> None:
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Webhook server stopped")

    async def serve(self) -> None:
        """Run until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()


def _self_topic(request: web.Request) -> str | None:
    """Topic advertised in the ``Link: <...>; rel="self"`` header, if any."""
    for link in request.headers.getall("Link", []):
        for part in link.split(","):
            if 'rel="self"' in part and "<" in part and ">" in part:
                return part[part.index("<") + 1 : part.index(">")]
    return None
