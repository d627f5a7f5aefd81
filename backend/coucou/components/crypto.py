"""Spot price of a crypto coin."""

from __future__ import annotations

from coucou.commands.types import CryptoCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

PRICE_URL = "https://api.coinbase.com/v2/prices/{pair}/spot"
QUOTE_CURRENCY = "EUR"


async def handle_crypto(
    ctx: BotContext, message: InboundMessage, command: CryptoCommand
) -> str | None:
    pair = f"{command.coin.upper()}-{QUOTE_CURRENCY}"
    response = await ctx.http.get(PRICE_URL.format(pair=pair))
    if response.status_code in (400, 404):
        return f"Unknown coin: {command.coin}"
    response.raise_for_status()
    data = response.json()["data"]
    return f"1 {data['base']} = {float(data['amount']):.2f} {data['currency']}"
