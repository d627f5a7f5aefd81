"""URL history lookup: title of the n-th most recent link of the channel."""

from __future__ import annotations

import html
import logging
import re

import httpx

from coucou.commands.types import UrlCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

LOGGER = logging.getLogger("UrlComponent")

_TITLE_RE = re.compile(r"<title[^>]*>(?P<title>.*?)</title>", re.I | re.S)
MAX_TITLE_LENGTH = 200


def extract_title(page: str) -> str | None:
    match = _TITLE_RE.search(page)
    if not match:
        return None
    title = " ".join(html.unescape(match.group("title")).split())
    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 1] + "…"
    return title or None


async def fetch_title(http: httpx.AsyncClient, url: str) -> str | None:
    response = await http.get(url, follow_redirects=True)
    response.raise_for_status()
    if "html" not in response.headers.get("content-type", ""):
        return None
    return extract_title(response.text)


async def handle_url(ctx: BotContext, message: InboundMessage, command: UrlCommand) -> str | None:
    url = await ctx.state.get_url(message.channel, command.offset)
    if url is None:
        return "Pas d'url" if command.offset == 0 else f"Pas d'url à l'indice {command.offset}"
    try:
        title = await fetch_title(ctx.http, url)
    except httpx.HTTPError as e:
        LOGGER.warning(f"Failed to fetch title of {url}: {type(e).__name__}: {e}")
        title = None
    return f"{title} [{url}]" if title else url
