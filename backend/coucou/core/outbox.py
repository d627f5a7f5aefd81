"""Single writer for outgoing chat messages.

Command handlers, the notification consumer and the reminder scheduler all
enqueue here; ``run`` is the only task that talks to the transport, so the
wire is serialised without serialising command processing.
"""

from __future__ import annotations

import asyncio
import logging

from coucou.core.messages import ChatTransport, OutgoingMessage

LOGGER = logging.getLogger("Outbox")


class Outbox:
    def __init__(self, transport: ChatTransport | None = None) -> None:
        self.transport = transport
        self._queue: asyncio.Queue[OutgoingMessage] = asyncio.Queue()

    async def send(self, target: str, text: str) -> None:
        await self._queue.put(OutgoingMessage(target=target, text=text))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def run(self) -> None:
        if self.transport is None:
            raise RuntimeError("Outbox has no transport attached")

        while True:
            message = await self._queue.get()
            try:
                await self.transport.send_message(message.target, message.text)
                LOGGER.debug(f"-> {message.target}: {message.text}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                LOGGER.error(f"Failed to send message to {message.target}: {type(e).__name__}: {e}")
            finally:
                self._queue.task_done()
