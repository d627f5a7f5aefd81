"""Explicit bundle of the shared resources every task and handler works with."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx

from coucou.core.clock import Clock, utcnow
from coucou.core.config import StreamWatcherSpec
from coucou.core.outbox import Outbox
from coucou.core.state import StateStore
from coucou.reminders.scheduler import ReminderScheduler
from coucou.twitch.api import HelixClient
from coucou.twitch.credentials import CredentialManager
from coucou.twitch.leases import LeaseManager
from coucou.twitch.notifications import NotificationPipeline


@dataclass
class BotContext:
    """Shared resources; each mutable one guards itself."""

    state: StateStore
    outbox: Outbox
    reminders: ReminderScheduler
    http: httpx.AsyncClient
    bot_nick: str = "coucoubot"
    clock: Clock = utcnow
    credentials: CredentialManager | None = None
    api: HelixClient | None = None
    leases: LeaseManager | None = None
    pipeline: NotificationPipeline | None = None
    watchers: list[StreamWatcherSpec] = field(default_factory=list)
