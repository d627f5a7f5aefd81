"""Message types exchanged with the chat transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class InboundMessage:
    """One decoded chat line, as handed to the dispatcher."""

    channel: str
    nick: str
    text: str


@dataclass(frozen=True)
class OutgoingMessage:
    target: str
    text: str


class ChatTransport(Protocol):
    async def send_message(self, target: str, text: str) -> None: ...
