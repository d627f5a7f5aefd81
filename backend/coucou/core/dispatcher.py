"""Routes inbound chat lines to command handlers."""

from __future__ import annotations

import asyncio
import logging

from coucou.commands.parser import parse_command
from coucou.commands.types import COMMAND_TYPES, Command
from coucou.components import HANDLERS, Handler
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage
from coucou.core.state import extract_urls

LOGGER = logging.getLogger("Dispatcher")


def add_target(target: str | None, text: str) -> str:
    """Address *text* to *target* when the command ended with ``> nick``."""
    return f"{target}: {text}" if target else text


class Dispatcher:
    """Handles each inbound line in its own task.

    The handler table must cover every command type; a missing entry is a
    startup error rather than a silently ignored command.
    """

    def __init__(self, ctx: BotContext, handlers: dict[type, Handler] | None = None) -> None:
        handlers = dict(HANDLERS if handlers is None else handlers)
        missing = [t.__name__ for t in COMMAND_TYPES if t not in handlers]
        if missing:
            raise ValueError(f"No handler for command types: {', '.join(missing)}")
        self.ctx = ctx
        self.handlers = handlers
        self._tasks: set[asyncio.Task] = set()

    def submit(self, message: InboundMessage) -> asyncio.Task:
        task = asyncio.create_task(self.handle(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle(self, message: InboundMessage) -> str | None:
        """Record the line, run the matching handler and queue its reply."""
        try:
            await self._record(message)
        except Exception:
            LOGGER.exception(f"Error recording line from {message.nick} in {message.channel}")

        command = parse_command(message.text, bot_nick=self.ctx.bot_nick)
        if command is None:
            return None

        try:
            reply = await self._run(message, command)
        except Exception:
            LOGGER.exception(f"Error handling {type(command).__name__} from {message.nick}")
            return None

        if reply:
            reply = add_target(getattr(command, "target", None), reply)
            await self.ctx.outbox.send(message.channel, reply)
        return reply

    async def _record(self, message: InboundMessage) -> None:
        state = self.ctx.state
        await state.record_nick(message.channel, message.nick)
        for url in extract_urls(message.text):
            await state.push_url(message.channel, url)

    async def _run(self, message: InboundMessage, command: Command) -> str | None:
        handler = self.handlers[type(command)]
        LOGGER.debug(f"{message.channel} <{message.nick}> {type(command).__name__}")
        return await handler(self.ctx, message, command)

    async def drain(self) -> None:
        """Wait for every in-flight handler."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
