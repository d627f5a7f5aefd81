"""Links from the shared list of cancerous links."""

from __future__ import annotations

import random

from coucou.commands.types import CancerCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

CANCER_LIST_URL = "https://raw.githubusercontent.com/CoucouInc/lalalaliste/master/cancer.txt"


def pick_entry(entries: list[str], pattern: str | None) -> str | None:
    """First entry containing *pattern* (case-insensitive), or a random one."""
    if not entries:
        return None
    if pattern is None:
        return random.choice(entries)
    needle = pattern.casefold()
    for entry in entries:
        if needle in entry.casefold():
            return entry
    return None


async def handle_cancer(
    ctx: BotContext, message: InboundMessage, command: CancerCommand
) -> str | None:
    response = await ctx.http.get(CANCER_LIST_URL)
    response.raise_for_status()
    entries = [line.strip() for line in response.text.splitlines() if line.strip()]
    entry = pick_entry(entries, command.pattern)
    if entry is None:
        return f"Rien trouvé pour « {command.pattern} »" if command.pattern else None
    return entry
