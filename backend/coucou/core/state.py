"""Process-wide chat state: per-channel URL history and per-user settings.

Each channel has its own lock, so commands in different channels never wait
on each other, while every read on a channel sees all writes made before it.
Settings are kept in memory behind their own lock and written through to the
database before the in-memory copy changes; no lock is held while the
database call is in flight.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from dataclasses import dataclass, field

from shared.repositories.user_setting import UserSettingRepository

LOGGER = logging.getLogger("State")

URL_PATTERN = re.compile(r"https?://[^\s<>\"']+", re.I)

DEFAULT_URL_HISTORY = 10
DEFAULT_NICK_HISTORY = 50


def extract_urls(text: str) -> list[str]:
    return [url.rstrip(".,;:!?)") for url in URL_PATTERN.findall(text)]


@dataclass
class ChannelState:
    """Ring buffers for one channel. Index 0 is the most recent entry."""

    name: str
    urls: deque[str]
    nicks: deque[str]
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class StateStore:
    def __init__(
        self,
        *,
        url_capacity: int = DEFAULT_URL_HISTORY,
        nick_capacity: int = DEFAULT_NICK_HISTORY,
        settings_repo: UserSettingRepository | None = None,
    ) -> None:
        if url_capacity < 1:
            raise ValueError("url_capacity must be at least 1")
        self.url_capacity = url_capacity
        self.nick_capacity = nick_capacity
        self._settings_repo = settings_repo
        self._channels: dict[str, ChannelState] = {}
        self._channels_lock = asyncio.Lock()
        # nick (lowercase) -> {key: value}
        self._settings: dict[str, dict[str, str]] = {}
        self._settings_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    async def _channel(self, channel: str) -> ChannelState:
        key = channel.lower()
        async with self._channels_lock:
            state = self._channels.get(key)
            if state is None:
                state = ChannelState(
                    name=key,
                    urls=deque(maxlen=self.url_capacity),
                    nicks=deque(maxlen=self.nick_capacity),
                )
                self._channels[key] = state
            return state

    async def push_url(self, channel: str, url: str) -> None:
        state = await self._channel(channel)
        async with state.lock:
            state.urls.appendleft(url)
        LOGGER.debug(f"[{channel}] url recorded: {url}")

    async def last_urls(self, channel: str, n: int) -> list[str]:
        """Up to *n* most recent URLs of *channel*, newest first."""
        state = await self._channel(channel)
        async with state.lock:
            return list(state.urls)[: max(n, 0)]

    async def get_url(self, channel: str, offset: int = 0) -> str | None:
        urls = await self.last_urls(channel, offset + 1)
        return urls[offset] if offset < len(urls) else None

    async def record_nick(self, channel: str, nick: str) -> None:
        state = await self._channel(channel)
        async with state.lock:
            if nick in state.nicks:
                state.nicks.remove(nick)
            state.nicks.appendleft(nick)

    async def recent_nicks(self, channel: str) -> list[str]:
        state = await self._channel(channel)
        async with state.lock:
            return list(state.nicks)

    # ------------------------------------------------------------------
    # User settings
    # ------------------------------------------------------------------

    async def load_settings(self) -> int:
        """Populate the in-memory settings from the database."""
        if self._settings_repo is None:
            return 0
        rows = await self._settings_repo.list_all()
        async with self._settings_lock:
            for row in rows:
                self._settings.setdefault(row.nick.lower(), {})[row.key] = row.value
        LOGGER.info(f"Loaded {len(rows)} user settings")
        return len(rows)

    async def get_setting(self, nick: str, key: str) -> str | None:
        async with self._settings_lock:
            return self._settings.get(nick.lower(), {}).get(key)

    async def set_setting(self, nick: str, key: str, value: str) -> None:
        nick = nick.lower()
        if self._settings_repo is not None:
            await self._settings_repo.upsert(nick, key, value)
        async with self._settings_lock:
            self._settings.setdefault(nick, {})[key] = value

    async def unset_setting(self, nick: str, key: str) -> bool:
        nick = nick.lower()
        if self._settings_repo is not None:
            await self._settings_repo.delete(nick, key)
        async with self._settings_lock:
            return self._settings.get(nick, {}).pop(key, None) is not None
