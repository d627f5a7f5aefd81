from __future__ import annotations

from coucou.commands.types import JokeCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

JOKE_URL = "https://icanhazdadjoke.com/"


async def handle_joke(ctx: BotContext, message: InboundMessage, command: JokeCommand) -> str | None:
    response = await ctx.http.get(JOKE_URL, headers={"Accept": "application/json"})
    response.raise_for_status()
    joke = response.json().get("joke")
    return " ".join(joke.split()) if joke else None
