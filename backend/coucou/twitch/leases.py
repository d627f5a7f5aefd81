"""Webhook subscription leases and their periodic renewal."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from coucou.core.clock import Clock, utcnow
from coucou.core.config import StreamWatcherSpec
from coucou.twitch.api import HelixClient, stream_topic

LOGGER = logging.getLogger("Leases")

DEFAULT_LEASE_SECONDS = 3600 * 24 * 5
RENEWAL_INTERVAL = timedelta(minutes=10)
RESUBSCRIBE_DELAY = 5.0


@dataclass(frozen=True)
class Lease:
    topic: str
    expires_at: datetime


def lease_expires_within(lease: Lease, now: datetime, window: timedelta) -> bool:
    """True once the lease expires before ``now + window``."""
    return now + window >= lease.expires_at


class LeaseManager:
    """Known leases by topic, plus subscribe/unsubscribe through the hub."""

    def __init__(
        self,
        api: HelixClient,
        *,
        lease_seconds: int = DEFAULT_LEASE_SECONDS,
        interval: timedelta = RENEWAL_INTERVAL,
        clock: Clock = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.api = api
        self.lease_seconds = lease_seconds
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._leases: dict[str, Lease] = {}
        self._lock = asyncio.Lock()

    async def leases(self) -> list[Lease]:
        async with self._lock:
            return list(self._leases.values())

    async def record(self, topic: str, lease_seconds: int | None = None) -> Lease:
        """Create or replace the lease of *topic* with a fresh expiry."""
        seconds = self.lease_seconds if lease_seconds is None else lease_seconds
        lease = Lease(topic=topic, expires_at=self._clock() + timedelta(seconds=seconds))
        async with self._lock:
            self._leases[topic] = lease
        return lease

    async def forget(self, topic: str) -> bool:
        async with self._lock:
            return self._leases.pop(topic, None) is not None

    async def subscribe(self, topic: str) -> Lease:
        await self.api.post_webhook("subscribe", topic, self.lease_seconds)
        return await self.record(topic)

    async def unsubscribe(self, topic: str) -> None:
        await self.api.post_webhook("unsubscribe", topic, self.lease_seconds)
        await self.forget(topic)

    async def due_for_renewal(self, now: datetime | None = None) -> list[Lease]:
        now = now or self._clock()
        return [
            lease
            for lease in await self.leases()
            if lease_expires_within(lease, now, self.interval)
        ]

    async def _renew(self, lease: Lease) -> bool:
        LOGGER.info(f"Renewing lease: {lease.topic} (expires {lease.expires_at.isoformat()})")
        try:
            await self.subscribe(lease.topic)
            return True
        except Exception as e:
            # next tick retries
            LOGGER.error(f"Failed to renew lease {lease.topic}: {type(e).__name__}: {e}")
            return False

    async def renew_due(self) -> int:
        """One sweep: renew every lease expiring within the next interval."""
        due = await self.due_for_renewal()
        if not due:
            LOGGER.info("No twitch lease to renew")
            return 0
        results = await asyncio.gather(*(self._renew(lease) for lease in due))
        return sum(results)

    async def watch(self) -> None:
        """Sweep every interval, forever."""
        while True:
            await self._sleep(self.interval.total_seconds())
            await self.renew_due()


async def start_watching(
    leases: LeaseManager,
    spec: StreamWatcherSpec,
    *,
    delay: float = RESUBSCRIBE_DELAY,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    """Resolve the login, drop any stale subscription, then subscribe again."""
    try:
        user_id = await leases.api.get_user_id(spec.twitch_login)
        topic = stream_topic(user_id)
        await leases.unsubscribe(topic)
        await sleep(delay)
        await leases.subscribe(topic)
    except Exception as e:
        LOGGER.error(f"Failed to watch stream of {spec.twitch_login}: {type(e).__name__}: {e}")
        return False
    LOGGER.info(f"Subscribed to stream notifications of {spec.twitch_login} ({user_id})")
    return True


async def watch_streams(leases: LeaseManager, specs: list[StreamWatcherSpec]) -> None:
    for spec in specs:
        await start_watching(leases, spec)
