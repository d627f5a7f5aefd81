"""Stream up/down notifications: decoding, the bounded pipeline and its consumer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Union

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import BaseModel, ValidationError

from coucou.core.config import StreamWatcherSpec
from coucou.core.errors import PipelineClosed
from coucou.core.outbox import Outbox
from coucou.core.state import StateStore

LOGGER = logging.getLogger("Notifications")

TWITCH_BASE = "https://www.twitch.tv"


class StreamData(BaseModel):
    """Stream metadata pushed by the webhook hub when a stream goes live."""

    id: str
    user_id: str
    user_name: str
    user_login: str | None = None
    game_id: str | None = None
    type: str = "live"
    title: str = ""
    viewer_count: int = 0
    started_at: datetime | None = None

    @property
    def login(self) -> str:
        return self.user_login or self.user_name

    @property
    def url(self) -> str:
        return f"{TWITCH_BASE}/{self.login.lower()}"


@dataclass(frozen=True)
class StreamOnline:
    stream: StreamData

    @property
    def account(self) -> str:
        return self.stream.login


@dataclass(frozen=True)
class StreamOffline:
    user_id: str | None = None


StreamNotification = Union[StreamOnline, StreamOffline]


def decode_notification(payload: Any, user_id: str | None = None) -> StreamNotification:
    """Decode a webhook body: ``{"data": [stream]}`` is online, ``{"data": []}`` offline.

    Raises ValueError on anything else.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise ValueError("notification payload must be an object with a 'data' list")
    data = payload["data"]
    if not data:
        return StreamOffline(user_id=user_id)
    try:
        return StreamOnline(stream=StreamData.model_validate(data[0]))
    except ValidationError as e:
        raise ValueError(f"invalid stream data: {e}") from e


def find_watcher(specs: list[StreamWatcherSpec], account: str) -> StreamWatcherSpec | None:
    account = account.casefold()
    for spec in specs:
        if spec.twitch_login.casefold() == account:
            return spec
    return None


def live_message(spec: StreamWatcherSpec, stream: StreamData) -> str:
    return f"Le stream de {spec.chat_nick} est maintenant live ! {stream.url}"


class NotificationPipeline:
    """Capacity-1 channel from the webhook receiver to the consumer.

    ``publish`` blocks until the consumer has taken the previous item, so a
    slow consumer slows the webhook caller down instead of dropping events.
    """

    def __init__(self, capacity: int = 1) -> None:
        send, receive = anyio.create_memory_object_stream[StreamNotification](capacity)
        self._send: MemoryObjectSendStream[StreamNotification] = send
        self.receive: MemoryObjectReceiveStream[StreamNotification] = receive

    async def publish(self, notification: StreamNotification) -> None:
        await self._send.send(notification)

    def close(self) -> None:
        """Stop accepting items; the consumer drains what is left and stops."""
        self._send.close()


class NotificationConsumer:
    def __init__(
        self,
        pipeline: NotificationPipeline,
        specs: list[StreamWatcherSpec],
        outbox: Outbox,
        state: StateStore,
    ) -> None:
        self.pipeline = pipeline
        self.specs = specs
        self.outbox = outbox
        self.state = state

    async def handle(self, notification: StreamNotification) -> bool:
        """Act on one notification. Returns True when a message was sent."""
        LOGGER.info(f"Got a notification: {notification}")
        if isinstance(notification, StreamOffline):
            return False

        spec = find_watcher(self.specs, notification.account)
        if spec is None:
            LOGGER.info(f"No watcher for stream account {notification.account}")
            return False

        stream = notification.stream
        await self.outbox.send(spec.chat_channel, live_message(spec, stream))
        await self.state.push_url(spec.chat_channel, stream.url)
        return True

    async def run(self) -> None:
        """Consume until the pipeline is closed, then raise PipelineClosed."""
        async with self.pipeline.receive:
            async for notification in self.pipeline.receive:
                await self.handle(notification)
        LOGGER.warning("Notification channel closed")
        raise PipelineClosed("notification channel closed")
