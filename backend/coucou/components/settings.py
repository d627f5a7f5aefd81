"""Per-user preferences (currently only the timezone)."""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from coucou.commands.types import SetSettingCommand, UnsetSettingCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

TIMEZONE_KEY = "tz"
KNOWN_SETTINGS = (TIMEZONE_KEY,)


def parse_timezone(value: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return None


async def handle_set(
    ctx: BotContext, message: InboundMessage, command: SetSettingCommand
) -> str | None:
    if command.key not in KNOWN_SETTINGS:
        return f"{message.nick}: unknown setting {command.key}. Available: {', '.join(KNOWN_SETTINGS)}"
    if command.key == TIMEZONE_KEY and parse_timezone(command.value) is None:
        return f"{message.nick}: unknown timezone {command.value}"
    await ctx.state.set_setting(message.nick, command.key, command.value)
    return f"{message.nick}: {command.key} set to {command.value}"


async def handle_unset(
    ctx: BotContext, message: InboundMessage, command: UnsetSettingCommand
) -> str | None:
    if command.key not in KNOWN_SETTINGS:
        return f"{message.nick}: unknown setting {command.key}. Available: {', '.join(KNOWN_SETTINGS)}"
    removed = await ctx.state.unset_setting(message.nick, command.key)
    return f"{message.nick}: {command.key} unset" if removed else f"{message.nick}: {command.key} was not set"
