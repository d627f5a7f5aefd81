"""Supervision of the long-lived background tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from coucou.core.config import StreamWatcherSpec
from coucou.core.errors import BackgroundTaskExited
from coucou.core.outbox import Outbox
from coucou.core.transport import TwitchChatBot
from coucou.reminders.scheduler import ReminderScheduler
from coucou.twitch.leases import LeaseManager, watch_streams
from coucou.twitch.notifications import NotificationConsumer
from coucou.twitch.webhook_server import WebhookServer

LOGGER = logging.getLogger("Tasks")


async def _forever(name: str, fn: Callable[[], Awaitable[None]]) -> None:
    """Run *fn*, which must never return; returning counts as a failure."""
    LOGGER.info(f"Starting {name}")
    await fn()
    raise BackgroundTaskExited(f"{name} exited")


@dataclass
class Services:
    bot: TwitchChatBot
    outbox: Outbox
    consumer: NotificationConsumer
    webhook: WebhookServer
    leases: LeaseManager
    reminders: ReminderScheduler
    watchers: list[StreamWatcherSpec]


async def run_services(services: Services) -> None:
    """Run every background task in one group.

    The first task to fail or return cancels all the others, and the error
    propagates out of the group as an ``ExceptionGroup``.
    """
    async with asyncio.TaskGroup() as group:
        group.create_task(_forever("chat transport", services.bot.start), name="chat")
        group.create_task(_forever("outbox writer", services.outbox.run), name="outbox")
        group.create_task(
            _forever("notification consumer", services.consumer.run), name="consumer"
        )
        group.create_task(_forever("webhook server", services.webhook.serve), name="webhook")
        group.create_task(_forever("lease watcher", services.leases.watch), name="leases")
        group.create_task(_forever("reminder scheduler", services.reminders.run), name="reminders")
        # One-shot: subscribing is allowed to finish.
        group.create_task(
            watch_streams(services.leases, services.watchers), name="initial-watch"
        )


def root_causes(group: BaseExceptionGroup) -> list[BaseException]:
    """Flatten nested exception groups into their leaf exceptions."""
    causes: list[BaseException] = []
    for exc in group.exceptions:
        if isinstance(exc, BaseExceptionGroup):
            causes.extend(root_causes(exc))
        else:
            causes.append(exc)
    return causes
