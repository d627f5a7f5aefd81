"""Command handlers, one per command type."""

from __future__ import annotations

from typing import Any, Awaitable, Callable

from coucou.commands.types import (
    CancerCommand,
    CryptoCommand,
    DateCommand,
    HelpCommand,
    JokeCommand,
    RemindCommand,
    RemindDeleteCommand,
    RemindListCommand,
    SetSettingCommand,
    ShoutCoucouCommand,
    UnsetSettingCommand,
    UrlCommand,
)
from coucou.components.cancer import handle_cancer
from coucou.components.crypto import handle_crypto
from coucou.components.date import handle_date
from coucou.components.help import handle_help
from coucou.components.joke import handle_joke
from coucou.components.reminder import (
    handle_remind,
    handle_remind_delete,
    handle_remind_list,
)
from coucou.components.settings import handle_set, handle_unset
from coucou.components.shout import handle_shout
from coucou.components.url import handle_url

Handler = Callable[[Any, Any, Any], Awaitable["str | None"]]

HANDLERS: dict[type, Handler] = {
    UrlCommand: handle_url,
    CryptoCommand: handle_crypto,
    DateCommand: handle_date,
    CancerCommand: handle_cancer,
    ShoutCoucouCommand: handle_shout,
    JokeCommand: handle_joke,
    HelpCommand: handle_help,
    SetSettingCommand: handle_set,
    UnsetSettingCommand: handle_unset,
    RemindCommand: handle_remind,
    RemindListCommand: handle_remind_list,
    RemindDeleteCommand: handle_remind_delete,
}

__all__ = ["HANDLERS", "Handler"]
