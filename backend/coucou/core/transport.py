"""Twitch chat transport: connection, token persistence and message I/O."""

from __future__ import annotations

import logging
from collections.abc import Callable

import twitchio
from twitchio import eventsub
from twitchio.ext import commands

from coucou.core.config import authorize_url
from coucou.core.messages import InboundMessage
from shared.repositories.token import TokenRepository

LOGGER: logging.Logger = logging.getLogger("Bot")


class TwitchChatBot(commands.Bot):
    """Chat client for the configured channels.

    Commands are not handled through twitchio's command framework: every
    chat message is turned into an ``InboundMessage`` and passed to
    ``on_message`` (the dispatcher).
    """

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        bot_id: str,
        owner_id: str | None,
        channels: list[str],
        tokens: TokenRepository,
        on_message: Callable[[InboundMessage], object],
    ) -> None:
        self.tokens = tokens
        self._client_id = client_id
        self.on_message = on_message
        self._channel_logins = [c.lstrip("#") for c in channels]
        self._broadcasters: dict[str, twitchio.PartialUser] = {}
        self._authorized: set[str] = set()

        super().__init__(
            client_id=client_id,
            client_secret=client_secret,
            bot_id=bot_id,
            owner_id=owner_id or None,
            prefix="&",
        )

    async def setup_hook(self) -> None:
        if self.bot_id not in self._authorized:
            LOGGER.warning(
                f"No token for the bot account yet, authorize it at {authorize_url(self._client_id)}"
            )

        if not self._channel_logins:
            LOGGER.warning("No chat channel configured")
            return

        users = await self.fetch_users(logins=self._channel_logins)
        for user in users:
            self._broadcasters[user.name.lower()] = user
            await self.subscribe_websocket(
                payload=eventsub.ChatMessageSubscription(
                    broadcaster_user_id=user.id, user_id=self.bot_id
                )
            )
            LOGGER.info(f"Subscribed to chat of #{user.name} ({user.id})")

        missing = set(self._channel_logins) - set(self._broadcasters)
        if missing:
            LOGGER.warning(f"Unknown chat channels: {', '.join(sorted(missing))}")

    async def event_ready(self) -> None:
        LOGGER.info("Successfully logged in as: %s", self.bot_id)

    async def event_oauth_authorized(
        self, payload: twitchio.authentication.UserTokenPayload
    ) -> None:
        await self.add_token(payload.access_token, payload.refresh_token)

    async def add_token(
        self, token: str, refresh: str
    ) -> twitchio.authentication.ValidateTokenPayload:
        resp: twitchio.authentication.ValidateTokenPayload = await super().add_token(token, refresh)
        if resp.user_id:
            self._authorized.add(resp.user_id)
            await self.tokens.upsert(resp.user_id, token, refresh)
        LOGGER.info(f"Added token to database: {resp.login or 'unknown'} ({resp.user_id})")
        return resp

    async def load_tokens(self, path: str | None = None) -> None:
        for tok in await self.tokens.list_tokens():
            try:
                await self.add_token(tok.token, tok.refresh)
            except twitchio.exceptions.InvalidTokenException as e:
                LOGGER.warning(
                    f"Invalid token for user_id {tok.user_id}, skipping. "
                    f"User needs to re-authenticate: {e}"
                )

    async def save_tokens(self, path: str | None = None) -> None:
        # tokens are written to the database as they are added
        pass

    async def event_message(self, payload: twitchio.ChatMessage) -> None:
        if payload.chatter.id == self.bot_id or payload.broadcaster is None:
            return
        LOGGER.debug(f"[{payload.chatter.name}#{payload.broadcaster.name}]: {payload.text}")
        self.on_message(
            InboundMessage(
                channel=f"#{payload.broadcaster.name}".lower(),
                nick=payload.chatter.name or payload.chatter.display_name or "",
                text=payload.text,
            )
        )

    async def _broadcaster(self, login: str) -> twitchio.PartialUser | None:
        if login not in self._broadcasters:
            users = await self.fetch_users(logins=[login])
            if not users:
                return None
            self._broadcasters[login] = users[0]
        return self._broadcasters[login]

    async def send_message(self, target: str, text: str) -> None:
        broadcaster = await self._broadcaster(target.lstrip("#").lower())
        if broadcaster is None:
            LOGGER.warning(f"Cannot send to unknown channel {target}")
            return
        await broadcaster.send_message(
            message=text,
            sender=self.bot_id,
            token_for=self.bot_id,
        )
