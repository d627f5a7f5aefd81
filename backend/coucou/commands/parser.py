"""Chat line parsing into typed commands.

A line is addressed to the bot when it starts with one of ``PREFIXES`` or
with a mention of the bot's nick (``coucoubot: help``).  Sub-parsers are
plain functions returning a command or ``None``; they are tried in order
and have no side effects, so a near miss never blocks a later alternative.
Anything that does not match is ignored without a reply.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import date, time

from coucou.commands.types import (
    AtDateTime,
    AtTime,
    CancerCommand,
    Command,
    CryptoCommand,
    DateCommand,
    Duration,
    HelpCommand,
    JokeCommand,
    OnWeekday,
    ReminderTime,
    RemindCommand,
    RemindDeleteCommand,
    RemindListCommand,
    SetSettingCommand,
    ShoutCoucouCommand,
    Tomorrow,
    UnsetSettingCommand,
    UrlCommand,
)

PREFIXES = ("&", "λ")

WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
    "lundi": 0,
    "mardi": 1,
    "mercredi": 2,
    "jeudi": 3,
    "vendredi": 4,
    "samedi": 5,
    "dimanche": 6,
}

_TIME = r"(?P<hour>\d{1,2})(?:[:h](?P<minute>\d{2}))?"
_AT = r"(?:at|à)"
_TEXT = r"(?P<text>\S.*)"

_TARGET_RE = re.compile(r"^(?P<body>.*?)\s*>\s*(?P<target>[^\s>]+)$", re.S)

_URL_RE = re.compile(r"^url(?:\s+(?P<offset>\d+))?$", re.I)
_CRYPTO_RE = re.compile(r"^crypto\s+(?P<coin>[a-z0-9]{2,10})$", re.I)
_DATE_RE = re.compile(r"^date$", re.I)
_CANCER_RE = re.compile(r"^cancer(?:\s+(?P<pattern>\S.*))?$", re.I | re.S)
_SHOUT_RE = re.compile(r"^coucou$", re.I)
_JOKE_RE = re.compile(r"^(?:joke|blague)$", re.I)
_HELP_RE = re.compile(r"^help(?:\s+(?P<topic>\S+))?$", re.I)
_SET_RE = re.compile(r"^(?:usr|settings)\s+set\s+(?P<key>\S+)\s+(?P<value>\S+)$", re.I)
_UNSET_RE = re.compile(r"^(?:usr|settings)\s+unset\s+(?P<key>\S+)$", re.I)

_REMIND_RE = re.compile(r"^remind\s+(?P<rest>\S.*)$", re.I | re.S)
_REMIND_LIST_RE = re.compile(r"^list$", re.I)
_REMIND_DELETE_RE = re.compile(r"^(?:del|delete)\s+(?P<id>\d+)$", re.I)
_REMIND_IN_RE = re.compile(r"^(?:in|dans)\s+(?P<rest>\S.*)$", re.I | re.S)
_REMIND_TOMORROW_RE = re.compile(
    rf"^(?:tomorrow|demain)(?:\s+{_AT}\s+{_TIME})?\s+{_TEXT}$", re.I | re.S
)
_REMIND_WEEKDAY_RE = re.compile(
    rf"^(?P<day>{'|'.join(WEEKDAYS)})(?:\s+{_AT}\s+{_TIME})?\s+{_TEXT}$", re.I | re.S
)
_REMIND_AT_DATE_RE = re.compile(
    rf"^{_AT}\s+(?P<date>\d{{4}}-\d{{2}}-\d{{2}})(?:\s+{_TIME})?\s+{_TEXT}$", re.I | re.S
)
_REMIND_AT_TIME_RE = re.compile(rf"^{_AT}\s+{_TIME}\s+{_TEXT}$", re.I | re.S)

# Units are case sensitive: M is months, m is minutes.
_DURATION_TOKEN_RE = re.compile(r"\s*(?P<amount>\d+)\s*(?P<unit>[yYMdDhHm])(?=[\s\d]|$)")
_DURATION_UNITS = {
    "y": "years",
    "Y": "years",
    "M": "months",
    "d": "days",
    "D": "days",
    "h": "hours",
    "H": "hours",
    "m": "minutes",
}


def _split_target(body: str) -> tuple[str, str | None]:
    """Split a trailing ``> nick`` addressing suffix off a command body."""
    match = _TARGET_RE.match(body)
    if match:
        return match.group("body"), match.group("target")
    return body, None


def _time_of_day(match: re.Match[str]) -> time | None:
    """Time captured by ``_TIME``; ``None`` when absent, ValueError when out of range."""
    if match.group("hour") is None:
        return None
    minute = match.group("minute")
    return time(int(match.group("hour")), int(minute) if minute else 0)


# --- Simple commands ------------------------------------------------------


def _parse_url(body: str) -> Command | None:
    body, target = _split_target(body)
    match = _URL_RE.match(body)
    if not match:
        return None
    return UrlCommand(offset=int(match.group("offset") or 0), target=target)


def _parse_crypto(body: str) -> Command | None:
    body, target = _split_target(body)
    match = _CRYPTO_RE.match(body)
    if not match:
        return None
    return CryptoCommand(coin=match.group("coin").lower(), target=target)


def _parse_date(body: str) -> Command | None:
    body, target = _split_target(body)
    if not _DATE_RE.match(body):
        return None
    return DateCommand(target=target)


def _parse_cancer(body: str) -> Command | None:
    body, target = _split_target(body)
    match = _CANCER_RE.match(body)
    if not match:
        return None
    return CancerCommand(pattern=match.group("pattern"), target=target)


def _parse_shout(body: str) -> Command | None:
    return ShoutCoucouCommand() if _SHOUT_RE.match(body) else None


def _parse_joke(body: str) -> Command | None:
    body, target = _split_target(body)
    if not _JOKE_RE.match(body):
        return None
    return JokeCommand(target=target)


def _parse_help(body: str) -> Command | None:
    body, target = _split_target(body)
    match = _HELP_RE.match(body)
    if not match:
        return None
    topic = match.group("topic")
    return HelpCommand(topic=topic.lower() if topic else None, target=target)


def _parse_settings(body: str) -> Command | None:
    match = _SET_RE.match(body)
    if match:
        return SetSettingCommand(key=match.group("key").lower(), value=match.group("value"))
    match = _UNSET_RE.match(body)
    if match:
        return UnsetSettingCommand(key=match.group("key").lower())
    return None


# --- Reminders ------------------------------------------------------------


def parse_duration(text: str) -> tuple[Duration, str] | None:
    """Consume one or more ``<n><unit>`` tokens, summing them.

    Returns the duration and the unconsumed remainder.
    """
    total = Duration()
    pos = 0
    while match := _DURATION_TOKEN_RE.match(text, pos):
        unit = _DURATION_UNITS[match.group("unit")]
        total = total + Duration(**{unit: int(match.group("amount"))})
        pos = match.end()
    if pos == 0:
        return None
    return total, text[pos:]


def _remind_in(rest: str) -> tuple[ReminderTime, str] | None:
    match = _REMIND_IN_RE.match(rest)
    if not match:
        return None
    parsed = parse_duration(match.group("rest"))
    if parsed is None:
        return None
    duration, text = parsed
    if not text[:1].isspace() or not text.strip():
        return None
    return duration, text.strip()


def _remind_tomorrow(rest: str) -> tuple[ReminderTime, str] | None:
    match = _REMIND_TOMORROW_RE.match(rest)
    if not match:
        return None
    return Tomorrow(at=_time_of_day(match)), match.group("text").strip()


def _remind_weekday(rest: str) -> tuple[ReminderTime, str] | None:
    match = _REMIND_WEEKDAY_RE.match(rest)
    if not match:
        return None
    weekday = WEEKDAYS[match.group("day").lower()]
    return OnWeekday(weekday=weekday, at=_time_of_day(match)), match.group("text").strip()


def _remind_at(rest: str) -> tuple[ReminderTime, str] | None:
    match = _REMIND_AT_DATE_RE.match(rest)
    if match:
        day = date.fromisoformat(match.group("date"))
        return AtDateTime(day=day, at=_time_of_day(match)), match.group("text").strip()
    match = _REMIND_AT_TIME_RE.match(rest)
    if match:
        return AtTime(at=_time_of_day(match)), match.group("text").strip()  # type: ignore[arg-type]
    return None


_REMIND_TIME_PARSERS: list[Callable[[str], tuple[ReminderTime, str] | None]] = [
    _remind_in,
    _remind_tomorrow,
    _remind_weekday,
    _remind_at,
]


def _parse_remind(body: str) -> Command | None:
    match = _REMIND_RE.match(body)
    if not match:
        return None
    rest = match.group("rest").strip()

    if _REMIND_LIST_RE.match(rest):
        return RemindListCommand()
    delete = _REMIND_DELETE_RE.match(rest)
    if delete:
        return RemindDeleteCommand(reminder_id=int(delete.group("id")))

    for parse_time in _REMIND_TIME_PARSERS:
        try:
            parsed = parse_time(rest)
        except ValueError:
            # out of range date or time of day, e.g. "at 25:00"
            parsed = None
        if parsed is not None:
            when, text = parsed
            return RemindCommand(when=when, text=text)
    return None


_PARSERS: list[Callable[[str], Command | None]] = [
    _parse_url,
    _parse_crypto,
    _parse_date,
    _parse_cancer,
    _parse_shout,
    _parse_joke,
    _parse_help,
    _parse_settings,
    _parse_remind,
]


def strip_prefix(text: str, bot_nick: str) -> str | None:
    """Return the command body if *text* is addressed to the bot."""
    for prefix in PREFIXES:
        if text.startswith(prefix):
            return text[len(prefix):].strip()
    match = re.match(rf"^@?{re.escape(bot_nick)}\s*[:,]\s*(?P<body>.*)$", text, re.I | re.S)
    if match:
        return match.group("body").strip()
    return None


def parse_command(text: str, *, bot_nick: str = "coucoubot") -> Command | None:
    """Parse one chat line, returning ``None`` for anything that is not a command."""
    body = strip_prefix(text.strip(), bot_nick)
    if not body:
        return None
    for parser in _PARSERS:
        command = parser(body)
        if command is not None:
            return command
    return None
