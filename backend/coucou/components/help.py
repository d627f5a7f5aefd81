from __future__ import annotations

from coucou.commands.types import HelpCommand
from coucou.core.context import BotContext
from coucou.core.messages import InboundMessage

GENERAL_HELP = (
    "`&help cmd` with cmd one of [url, crypto, date, cancer, coucou, joke, remind, settings]"
)

HELP_TOPICS: dict[str, str] = {
    "url": (
        "[&url | &url n] Title of the last url seen in the channel. With n > 0, "
        "the n-th previous one: &url 1 is the second to last url."
    ),
    "crypto": "&crypto <coin>. Current exchange rate of the given coin, in EUR.",
    "date": "Today's date in the French Republican calendar.",
    "cancer": (
        "&cancer [match]. The matching cancerous link, or a random one without argument. "
        "The list is at https://github.com/CoucouInc/lalalaliste/blob/master/cancer.txt"
    ),
    "coucou": "Says coucou to someone recently seen in the channel.",
    "joke": "A random (bad) joke.",
    "remind": (
        "&remind (in <duration>|at [date] <time>|tomorrow [at <time>]|<weekday> [at <time>]) "
        "<text>. ex: &remind at 2020-06-28 12:34 coucou. &remind à 19:00 text. "
        "&remind in 1y 10M 1d 2h10m another coucou. &remind lundi coucou. "
        "&remind tuesday at 12 manger. Times use your tz setting, UTC otherwise. "
        "&remind list. &remind del <id>"
    ),
    "settings": (
        "Save some user preference. &usr set <setting> <value> | &usr unset <setting>. "
        "Settings: tz, a timezone such as Europe/Paris"
    ),
}


async def handle_help(ctx: BotContext, message: InboundMessage, command: HelpCommand) -> str | None:
    if command.topic is None or command.topic == "general":
        text = GENERAL_HELP
    elif command.topic in HELP_TOPICS:
        text = HELP_TOPICS[command.topic]
    else:
        text = f"Unknown command: {command.topic}. {GENERAL_HELP}"
    return text
