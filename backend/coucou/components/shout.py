from __future__ import annotations

import random

from coucou.commands.types import ShoutCoucouCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage


async def handle_shout(
    ctx: BotContext, message: InboundMessage, command: ShoutCoucouCommand
) -> str | None:
    """Say coucou to a random nick recently seen in the channel."""
    excluded = {message.nick.lower(), ctx.bot_nick.lower()}
    nicks = [n for n in await ctx.state.recent_nicks(message.channel) if n.lower() not in excluded]
    if not nicks:
        return None
    return f"coucou {random.choice(nicks)}"
